import time
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock


@dataclass
class _FailureWindow:
    failures: list[float] = field(default_factory=list)
    locked_until: float = 0.0


class LoginRateLimiter:
    """Locks a login key after too many failed attempts inside a sliding window."""

    def __init__(
        self,
        *,
        max_attempts: int,
        window_seconds: int,
        lock_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lock_seconds = lock_seconds
        self._clock = clock
        self._windows: dict[str, _FailureWindow] = {}
        self._lock = Lock()

    def retry_after(self, key: str) -> int:
        """Seconds until the key may try again, 0 when it is not locked."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0
            self._drop_expired(window, now)
            if window.locked_until > now:
                return int(window.locked_until - now) + 1
            if not window.failures:
                self._windows.pop(key, None)
            return 0

    def record_failure(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            window = self._windows.setdefault(key, _FailureWindow())
            self._drop_expired(window, now)
            window.failures.append(now)
            if len(window.failures) >= self.max_attempts:
                window.locked_until = now + self.lock_seconds

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def _drop_expired(self, window: _FailureWindow, now: float) -> None:
        cutoff = now - self.window_seconds
        window.failures = [ts for ts in window.failures if ts >= cutoff]
