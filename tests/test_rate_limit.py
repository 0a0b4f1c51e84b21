from app.core.rate_limit import LoginRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _limiter(clock: FakeClock) -> LoginRateLimiter:
    return LoginRateLimiter(max_attempts=3, window_seconds=60, lock_seconds=120, clock=clock)


def test_locks_after_max_failures_and_unlocks_after_lock_period():
    clock = FakeClock()
    limiter = _limiter(clock)
    key = "owner@example.com:127.0.0.1"

    for _ in range(2):
        limiter.record_failure(key)
    assert limiter.retry_after(key) == 0

    limiter.record_failure(key)
    assert limiter.retry_after(key) == 121

    clock.now += 100
    assert limiter.retry_after(key) == 21

    clock.now += 21
    assert limiter.retry_after(key) == 0


def test_failures_outside_window_do_not_count():
    clock = FakeClock()
    limiter = _limiter(clock)
    key = "owner@example.com:127.0.0.1"

    limiter.record_failure(key)
    limiter.record_failure(key)
    clock.now += 61
    limiter.record_failure(key)

    assert limiter.retry_after(key) == 0


def test_reset_clears_failures_for_key_only():
    clock = FakeClock()
    limiter = _limiter(clock)

    for _ in range(3):
        limiter.record_failure("a")
        limiter.record_failure("b")
    limiter.reset("a")

    assert limiter.retry_after("a") == 0
    assert limiter.retry_after("b") > 0
