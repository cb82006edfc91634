"""
Grid image -> identified cards.

One forward pass per run: plan regions, extract text, parse hints, resolve
hints concurrently against the card database, assemble records in grid
order. Each stage boundary yields one PipelineEvent; every run that is not
cancelled ends in exactly one Completed or Failed.

Per-region and per-hint failures never fail the run. A region whose OCR
failed contributes nothing, a hint whose lookup failed becomes a
placeholder card built from the OCR fields. Only a bad grid, a broken
recognizer or an unexpected exception produce Failed. Cancellation raises
PipelineCancelled out of the generator and emits no terminal event.
"""
import dataclasses, threading, time
from concurrent.futures import ThreadPoolExecutor, as_completed

from .config import GRID_PADDING, CARD_ASPECT, RESOLVE_MAX_ATTEMPTS, RESOLVE_BACKOFF_S
from .errors import (ExtractionFailure, InvalidGridConfig, NotFound, ParseMiss,
                     PipelineCancelled, PipelineFailed, ResolutionError, TransientError)
from .events import Started, RegionsPlanned, TextExtracted, HintsParsed, Resolved, Completed, Failed
from .grid import plan_card_regions
from .log import dbg, dbg2
from .models import GridMode, IdentityHint, ResolvedCard
from .parser import parse_hint

NO_REGIONS_MESSAGE = "no valid card regions detected"


def _sleep_uncancelled(delay):
    time.sleep(delay)
    return False


def resolve_with_retry(resolve, hint, max_attempts=RESOLVE_MAX_ATTEMPTS, backoff_s=RESOLVE_BACKOFF_S, wait=None):
    """
    Call resolve(hint) up to max_attempts times.

    Only TransientError is retried, after backoff_s * attempt (linear).
    NotFound stops at once. The last attempt's error is re-raised.
    wait(delay) sleeps and returns True when the run was cancelled meanwhile.
    """
    wait = wait or _sleep_uncancelled
    attempt = 0
    while True:
        attempt += 1
        try:
            return resolve(hint)
        except NotFound:
            raise
        except TransientError as e:
            if attempt >= max_attempts:
                dbg("RESOLVE ERROR", f"giving up after {attempt} attempts: {e}")
                raise
            delay = backoff_s * attempt
            dbg("RESOLVE RETRY", f"attempt {attempt}/{max_attempts} failed ({e}); next in {delay * 1000:.0f}ms")
            if wait(delay):
                raise PipelineCancelled("cancelled during retry backoff") from e


@dataclasses.dataclass
class _Outcome:
    index: int
    hint: IdentityHint = None
    record: object = None
    error: Exception = None


def assemble_cards(outcomes):
    """Grid order; resolved record, else placeholder from the hint, else nothing."""
    cards = []
    for o in sorted(outcomes, key=lambda o: o.index):
        if o.record is not None:
            cards.append(ResolvedCard.from_record(o.record))
        elif o.hint is not None:
            cards.append(ResolvedCard.placeholder(o.hint))
    return cards


def _check(cancel):
    if cancel is not None and cancel.is_set():
        raise PipelineCancelled("scan cancelled")


class IdentificationPipeline:

    def __init__(self, recognizer, client, lexicon=None, parser=parse_hint,
                 max_attempts=RESOLVE_MAX_ATTEMPTS, backoff_s=RESOLVE_BACKOFF_S,
                 padding=GRID_PADDING, target_ratio=CARD_ASPECT):
        self.recognizer = recognizer
        self.client = client
        self.lexicon = lexicon
        self.parser = parser
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_s = float(backoff_s)
        self.padding = padding
        self.target_ratio = target_ratio

    # ---------------------------
    # Stages
    # ---------------------------
    def plan(self, image, grid):
        if image is None or getattr(image, "ndim", 0) < 2:
            raise InvalidGridConfig("image has no pixel data")
        h, w = image.shape[:2]
        return plan_card_regions(int(w), int(h), grid.rows, grid.cols, self.padding, self.target_ratio)

    def extract(self, image, regions, cancel=None):
        texts = []
        for idx, region in enumerate(regions):
            _check(cancel)
            try:
                texts.append(list(self.recognizer.recognize(image, region) or []))
            except ExtractionFailure as e:
                dbg("OCR WARN", f"region {idx} unreadable: {e}")
                texts.append([])
        return texts

    def parse_one(self, texts):
        hint = self.parser(texts)
        if hint is None or hint.is_empty:
            raise ParseMiss("no card fields recognized")
        if self.lexicon is not None and hint.name:
            fixed = self.lexicon.correct(hint.name)
            if fixed and fixed != hint.name:
                dbg2("NAME FIX", f"'{hint.name}' -> '{fixed}'")
                hint = dataclasses.replace(hint, name=fixed)
        return hint

    def parse(self, texts):
        hints = []
        for idx, t in enumerate(texts):
            hint = None
            if t:
                try:
                    hint = self.parse_one(t)
                except ParseMiss as e:
                    dbg2("PARSE", f"region {idx}: {e}")
            hints.append(hint)
        return hints

    def _resolve_task(self, hint, cancel, abort):
        def _attempt(h):
            if cancel.is_set() or abort.is_set():
                raise PipelineCancelled("scan cancelled")
            return self.client.resolve(h, cancel=cancel)

        def _wait(delay):
            return cancel.wait(delay) or abort.is_set()

        return resolve_with_retry(_attempt, hint, self.max_attempts, self.backoff_s, wait=_wait)

    def resolve_all(self, hints, on_progress=None, cancel=None):
        """One task per hint; progress = finished tasks / launched tasks."""
        cancel = cancel if cancel is not None else threading.Event()
        outcomes = [_Outcome(i, h) for i, h in enumerate(hints)]
        pending = [o for o in outcomes if o.hint is not None]
        if not pending:
            if on_progress:
                on_progress(1.0)
            return outcomes

        total = len(pending)
        done = 0
        abort = threading.Event()
        pool = ThreadPoolExecutor(max_workers=total, thread_name_prefix="resolve")
        try:
            futs = {pool.submit(self._resolve_task, o.hint, cancel, abort): o for o in pending}
            for fut in as_completed(futs):
                o = futs[fut]
                try:
                    o.record = fut.result()
                except PipelineCancelled:
                    raise
                except ResolutionError as e:
                    o.error = e
                    dbg2("RESOLVE", f"region {o.index}: {type(e).__name__}: {e}")
                except Exception as e:
                    # unexpected per-card error: placeholder, not a failed run
                    o.error = e
                    dbg("RESOLVE ERROR", f"region {o.index}: unexpected {type(e).__name__}: {e}")
                done += 1
                if on_progress:
                    on_progress(done / float(total))
        except BaseException:
            abort.set()
            raise
        finally:
            pool.shutdown(wait=True, cancel_futures=True)
        return outcomes

    # ---------------------------
    # Entry points
    # ---------------------------
    def process_grid_image(self, image, grid_mode, on_progress=None, cancel=None):
        """Generator of PipelineEvents for one grid photo."""
        try:
            yield from self._run(image, grid_mode, on_progress, cancel)
        except PipelineCancelled:
            dbg("PIPELINE", "Run cancelled")
            raise
        except Exception as e:
            dbg("PIPELINE ERROR", f"{type(e).__name__}: {e}")
            yield Failed(f"processing failed: {e}")

    def _run(self, image, grid_mode, on_progress, cancel):
        t0 = time.perf_counter()
        try:
            grid = GridMode.parse(grid_mode)
        except ValueError as e:
            yield Failed(f"invalid grid configuration: {e}")
            return
        yield Started(grid.card_count)

        _check(cancel)
        try:
            regions = self.plan(image, grid)
        except InvalidGridConfig as e:
            dbg("PIPELINE ERROR", f"bad grid: {e}")
            yield Failed(f"invalid grid configuration: {e}")
            return
        yield RegionsPlanned(len(regions))
        if not regions:
            dbg("PIPELINE WARN", f"{grid.key} grid left no usable cells")
            yield Failed(NO_REGIONS_MESSAGE)
            return

        try:
            texts = self.extract(image, regions, cancel)
        except PipelineCancelled:
            raise
        except Exception as e:
            dbg("OCR ERROR", f"recognizer broken: {e}")
            yield Failed(f"text recognition failed: {e}")
            return
        yield TextExtracted(len(texts))

        _check(cancel)
        hints = self.parse(texts)
        yield HintsParsed(sum(1 for h in hints if h is not None))

        _check(cancel)
        outcomes = self.resolve_all(hints, on_progress, cancel)
        resolved = sum(1 for o in outcomes if o.record is not None)
        yield Resolved(resolved)

        _check(cancel)
        cards = assemble_cards(outcomes)
        dbg("PIPELINE", f"{grid.key}: {len(cards)} cards ({resolved} resolved) in {time.perf_counter() - t0:.2f}s")
        yield Completed(cards)

    def identify_grid(self, image, grid_mode, on_progress=None, cancel=None, on_event=None):
        """Drain a run; the Completed list, or PipelineFailed."""
        for ev in self.process_grid_image(image, grid_mode, on_progress=on_progress, cancel=cancel):
            if on_event:
                on_event(ev)
            if isinstance(ev, Completed):
                return ev.cards
            if isinstance(ev, Failed):
                raise PipelineFailed(ev.message)
        raise PipelineFailed("run ended without a result")

    def identify_single(self, hint):
        """One lookup, no retries. None when the card is not found."""
        if isinstance(hint, dict):
            hint = IdentityHint.from_dict(hint)
        try:
            record = self.client.resolve(hint)
        except NotFound:
            return None
        return ResolvedCard.from_record(record)
