__version__ = "0.1.0"

from .errors import (ScannerError, InvalidGridConfig, ExtractionFailure, ParseMiss, ResolutionError,
                     NotFound, TransientError, PipelineCancelled, PipelineFailed)
from .events import Started, RegionsPlanned, TextExtracted, HintsParsed, Resolved, Completed, Failed
from .grid import plan_regions, fit_aspect
from .models import (Region, RecognizedText, IdentityHint, CardRecord, ResolvedCard, GridMode,
                     GRID_3X3, GRID_4X3)
from .parser import parse_hint
from .pipeline import IdentificationPipeline, resolve_with_retry
from .ratelimit import RateLimiter
