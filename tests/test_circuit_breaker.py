"""Unit tests for the count-window circuit breaker."""

import pytest

from reportflow.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        name="test",
        window_size=10,
        minimum_calls=3,
        failure_rate_threshold=50,
        open_seconds=5,
        half_open_calls=1,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_stays_closed_below_minimum_calls(breaker):
    await breaker.on_failure()
    await breaker.on_failure()
    assert breaker.state == "closed"
    await breaker.allow()


@pytest.mark.asyncio
async def test_opens_at_failure_rate_threshold(breaker):
    await breaker.on_success()
    await breaker.on_failure()
    assert breaker.state == "closed"
    await breaker.on_failure()  # 2 of 3 failed
    assert breaker.state == "open"

    with pytest.raises(CircuitOpenError):
        await breaker.allow()


@pytest.mark.asyncio
async def test_successes_keep_rate_below_threshold(breaker):
    for _ in range(3):
        await breaker.on_success()
    await breaker.on_failure()
    assert breaker.failure_rate == 25.0
    assert breaker.state == "closed"


@pytest.mark.asyncio
async def test_half_open_admits_single_trial(breaker, clock):
    for _ in range(3):
        await breaker.on_failure()
    assert breaker.state == "open"

    clock.advance(5)
    await breaker.allow()
    assert breaker.state == "half_open"

    with pytest.raises(CircuitOpenError):
        await breaker.allow()


@pytest.mark.asyncio
async def test_half_open_success_closes(breaker, clock):
    for _ in range(3):
        await breaker.on_failure()
    clock.advance(5)
    await breaker.allow()
    await breaker.on_success()
    assert breaker.state == "closed"
    assert breaker.failure_rate == 0.0


@pytest.mark.asyncio
async def test_half_open_failure_reopens(breaker, clock):
    for _ in range(3):
        await breaker.on_failure()
    clock.advance(5)
    await breaker.allow()
    await breaker.on_failure()
    assert breaker.state == "open"

    clock.advance(4)
    with pytest.raises(CircuitOpenError):
        await breaker.allow()


def test_minimum_calls_cannot_exceed_window():
    with pytest.raises(ValueError):
        CircuitBreaker(window_size=3, minimum_calls=5)
