"""Progress events emitted by the identification pipeline, one class per kind."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union

from .models import ResolvedCard


@dataclass(frozen=True)
class Started:
    expected_count: int
    kind = "started"


@dataclass(frozen=True)
class RegionsPlanned:
    count: int
    kind = "regions_planned"


@dataclass(frozen=True)
class TextExtracted:
    count: int
    kind = "text_extracted"


@dataclass(frozen=True)
class HintsParsed:
    count: int
    kind = "hints_parsed"


@dataclass(frozen=True)
class Resolved:
    count: int
    kind = "resolved"


@dataclass(frozen=True)
class Completed:
    cards: List[ResolvedCard] = field(default_factory=list)
    kind = "completed"


@dataclass(frozen=True)
class Failed:
    message: str
    kind = "failed"


PipelineEvent = Union[Started, RegionsPlanned, TextExtracted, HintsParsed, Resolved, Completed, Failed]

TERMINAL_EVENTS = (Completed, Failed)


def is_terminal(event) -> bool:
    return isinstance(event, TERMINAL_EVENTS)


def event_to_dict(event) -> dict:
    """JSON-ready form used by the HTTP stream and the CLI."""
    if isinstance(event, Completed):
        return {"event": event.kind, "cards": [c.to_dict() for c in event.cards]}
    if isinstance(event, Failed):
        return {"event": event.kind, "message": event.message}
    if isinstance(event, Started):
        return {"event": event.kind, "expected_count": event.expected_count}
    return {"event": event.kind, "count": event.count}
