import threading, time

from .errors import PipelineCancelled


class RateLimiter:
    """
    Spaces call *starts* at least min_interval apart across threads.

    Each caller reserves the next free start slot under the lock, records it
    as the last start, then sleeps outside the lock until its slot arrives.
    The lock is never held while sleeping or while the caller's request runs.
    Slots go to whichever thread takes the lock first, not FIFO.
    """

    def __init__(self, min_interval=0.1, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_start = None

    @property
    def last_start(self):
        with self._lock:
            return self._last_start

    def reserve(self):
        """Claim the next start slot; returns its clock time."""
        with self._lock:
            now = self._clock()
            if self._last_start is None:
                start = now
            else:
                start = max(now, self._last_start + self.min_interval)
            self._last_start = start
        return start

    def acquire(self, cancel=None):
        """
        Block until this caller may start its call; returns the slot time.

        With a cancel event the wait ends early when it is set, raising
        PipelineCancelled. The claimed slot is simply left unused.
        """
        start = self.reserve()
        delay = start - self._clock()
        if delay > 0:
            if cancel is None:
                self._sleep(delay)
            elif cancel.wait(delay):
                raise PipelineCancelled("cancelled while waiting for a request slot")
        elif cancel is not None and cancel.is_set():
            raise PipelineCancelled("cancelled before request")
        return start
