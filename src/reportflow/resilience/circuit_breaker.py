"""Count-window circuit breaker for outbound calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    """Raised by ``allow()`` while the breaker rejects calls."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit '{name}' is open (retry in {retry_after:.1f}s)")
        self.name = name
        self.retry_after = retry_after


class CircuitBreaker:
    """Failure-rate breaker over the last ``window_size`` outcomes.

    Usage::

        await breaker.allow()        # raises CircuitOpenError when open
        try:
            result = await call()
        except Exception:
            await breaker.on_failure()
            raise
        await breaker.on_success()
    """

    def __init__(
        self,
        name: str = "default",
        window_size: int = 10,
        minimum_calls: int = 5,
        failure_rate_threshold: float = 50.0,
        open_seconds: float = 30.0,
        half_open_calls: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if minimum_calls > window_size:
            raise ValueError("minimum_calls cannot exceed window_size")
        self.name = name
        self.window_size = window_size
        self.minimum_calls = minimum_calls
        self.failure_rate_threshold = failure_rate_threshold
        self.open_seconds = open_seconds
        self.half_open_calls = half_open_calls
        self._clock = clock
        self._lock = asyncio.Lock()
        self._window: deque[bool] = deque(maxlen=window_size)
        self._state = CLOSED
        self._opened_at = 0.0
        self._trials_admitted = 0
        self._trials_succeeded = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def failure_rate(self) -> float:
        if not self._window:
            return 0.0
        failures = sum(1 for ok in self._window if not ok)
        return failures * 100.0 / len(self._window)

    async def allow(self) -> None:
        """Admit a call or raise CircuitOpenError."""
        async with self._lock:
            if self._state == CLOSED:
                return
            if self._state == OPEN:
                remaining = self._opened_at + self.open_seconds - self._clock()
                if remaining > 0:
                    raise CircuitOpenError(self.name, remaining)
                self._transition(HALF_OPEN)
            if self._trials_admitted >= self.half_open_calls:
                raise CircuitOpenError(self.name, 0.0)
            self._trials_admitted += 1

    async def on_success(self) -> None:
        async with self._lock:
            if self._state == HALF_OPEN:
                self._trials_succeeded += 1
                if self._trials_succeeded >= self.half_open_calls:
                    self._transition(CLOSED)
                return
            self._window.append(True)

    async def on_failure(self) -> None:
        async with self._lock:
            if self._state == HALF_OPEN:
                self._transition(OPEN)
                return
            if self._state == OPEN:
                return
            self._window.append(False)
            if len(self._window) >= self.minimum_calls and self.failure_rate >= self.failure_rate_threshold:
                self._transition(OPEN)

    def _transition(self, new_state: str) -> None:
        logger.warning("Circuit '%s' %s -> %s", self.name, self._state, new_state)
        self._state = new_state
        self._trials_admitted = 0
        self._trials_succeeded = 0
        if new_state == OPEN:
            self._opened_at = self._clock()
        elif new_state == CLOSED:
            self._window.clear()
