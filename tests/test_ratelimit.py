import threading, time

import pytest

from mtg_grid_scanner.errors import PipelineCancelled
from mtg_grid_scanner.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, limiter=None):
        self.now = 0.0
        self.sleeps = []
        self.lock_held_while_sleeping = False
        self.limiter = limiter

    def __call__(self):
        return self.now

    def sleep(self, delay):
        if self.limiter is not None and self.limiter._lock.locked():
            self.lock_held_while_sleeping = True
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def clock():
    return FakeClock()


def test_first_call_does_not_wait(clock):
    rl = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    assert rl.acquire() == 0.0
    assert clock.sleeps == []
    assert rl.last_start == 0.0


def test_back_to_back_calls_are_spaced(clock):
    rl = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    starts = [rl.acquire() for _ in range(4)]
    assert starts == pytest.approx([0.0, 0.1, 0.2, 0.3])
    assert clock.sleeps == pytest.approx([0.1, 0.1, 0.1])


def test_idle_time_counts_toward_interval(clock):
    rl = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    rl.acquire()
    clock.now = 0.04
    assert rl.acquire() == pytest.approx(0.1)
    assert clock.sleeps == pytest.approx([0.06])
    clock.now = 5.0
    assert rl.acquire() == 5.0
    assert len(clock.sleeps) == 1


def test_reserve_claims_consecutive_slots(clock):
    rl = RateLimiter(0.25, clock=clock, sleep=clock.sleep)
    assert [rl.reserve() for _ in range(3)] == pytest.approx([0.0, 0.25, 0.5])
    assert clock.sleeps == []


def test_lock_released_while_sleeping():
    clock = FakeClock()
    rl = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    clock.limiter = rl
    for _ in range(3):
        rl.acquire()
    assert clock.sleeps
    assert not clock.lock_held_while_sleeping


def test_zero_interval_never_sleeps(clock):
    rl = RateLimiter(0, clock=clock, sleep=clock.sleep)
    for _ in range(5):
        rl.acquire()
    assert clock.sleeps == []


def test_cancel_cuts_slot_wait_short(clock):
    rl = RateLimiter(0.1, clock=clock, sleep=clock.sleep)
    rl.acquire()
    stop = threading.Event()
    stop.set()
    with pytest.raises(PipelineCancelled):
        rl.acquire(stop)
    assert clock.sleeps == []


def test_cancel_wait_times_out_into_slot():
    rl = RateLimiter(0.05)
    stop = threading.Event()
    first = rl.acquire(stop)
    second = rl.acquire(stop)
    assert second - first == pytest.approx(0.05)
    assert time.monotonic() >= second - 1e-6


def test_threads_get_distinct_spaced_slots():
    interval = 0.05
    rl = RateLimiter(interval)
    slots, actual = [], []
    lock = threading.Lock()

    def worker():
        s = rl.acquire()
        t = time.monotonic()
        with lock:
            slots.append(s)
            actual.append((s, t))

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    slots.sort()
    for a, b in zip(slots, slots[1:]):
        assert b - a >= interval - 1e-9
    # nobody started before their slot
    for s, t in actual:
        assert t >= s - 1e-6
