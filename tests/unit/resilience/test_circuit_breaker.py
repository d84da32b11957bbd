# tests/unit/resilience/test_circuit_breaker.py
"""
针对 `deeplx_relay.resilience.circuit_breaker` 的单元测试。
"""

import pytest

from deeplx_relay.config import CircuitBreakerSettings
from deeplx_relay.core.exceptions import CircuitOpenError, UpstreamTransportError
from deeplx_relay.core.types import CircuitState
from deeplx_relay.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from tests.helpers.fakes import FakeClock

ENDPOINT = "https://proxy-a.example/jsonrpc"


async def _ok() -> str:
    return "ok"


async def _boom() -> str:
    raise UpstreamTransportError("connection refused")


@pytest.fixture
def breaker(fake_clock: FakeClock) -> CircuitBreaker:
    settings = CircuitBreakerSettings(
        failure_threshold=2, recovery_timeout=30, success_threshold=2
    )
    return CircuitBreaker(ENDPOINT, settings, clock=fake_clock)


async def _fail_times(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(UpstreamTransportError):
            await breaker.execute(_boom)


@pytest.mark.asyncio
async def test_success_passes_through_and_resets_failures(breaker: CircuitBreaker) -> None:
    await _fail_times(breaker, 1)
    assert breaker.snapshot().failure_count == 1

    assert await breaker.execute(_ok) == "ok"
    assert breaker.state is CircuitState.CLOSED
    assert breaker.snapshot().failure_count == 0


@pytest.mark.asyncio
async def test_opens_after_threshold_and_short_circuits(
    breaker: CircuitBreaker, fake_clock: FakeClock
) -> None:
    await _fail_times(breaker, 2)
    assert breaker.state is CircuitState.OPEN
    assert breaker.snapshot().last_failure_time == fake_clock.now

    calls = []

    async def tracked() -> str:
        calls.append(1)
        return "ok"

    with pytest.raises(CircuitOpenError) as exc_info:
        await breaker.execute(tracked)
    assert calls == []
    assert exc_info.value.endpoint == ENDPOINT
    assert exc_info.value.message == "Circuit breaker is OPEN"


@pytest.mark.asyncio
async def test_half_open_recovers_after_success_threshold(
    breaker: CircuitBreaker, fake_clock: FakeClock
) -> None:
    await _fail_times(breaker, 2)
    fake_clock.advance(31)

    assert await breaker.execute(_ok) == "ok"
    assert breaker.state is CircuitState.HALF_OPEN
    assert breaker.snapshot().success_count == 1

    assert await breaker.execute(_ok) == "ok"
    assert breaker.state is CircuitState.CLOSED
    assert breaker.snapshot().failure_count == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens(
    breaker: CircuitBreaker, fake_clock: FakeClock
) -> None:
    await _fail_times(breaker, 2)
    fake_clock.advance(31)

    # 探测失败：失败计数仍高于阈值，立即重新打开
    await _fail_times(breaker, 1)
    assert breaker.state is CircuitState.OPEN

    with pytest.raises(CircuitOpenError):
        await breaker.execute(_ok)


@pytest.mark.asyncio
async def test_stays_open_before_recovery_timeout(
    breaker: CircuitBreaker, fake_clock: FakeClock
) -> None:
    await _fail_times(breaker, 2)
    fake_clock.advance(29)

    with pytest.raises(CircuitOpenError):
        await breaker.execute(_ok)


def test_snapshot_is_a_copy(breaker: CircuitBreaker) -> None:
    snapshot = breaker.snapshot()
    snapshot.failure_count = 99
    assert breaker.snapshot().failure_count == 0


class TestRegistry:
    def test_one_breaker_per_endpoint(self, fake_clock: FakeClock) -> None:
        registry = CircuitBreakerRegistry(CircuitBreakerSettings(), clock=fake_clock)

        first = registry.get(ENDPOINT)
        assert registry.get(ENDPOINT) is first
        assert registry.get("https://proxy-b.example/jsonrpc") is not first
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_failures_are_isolated_per_endpoint(self, fake_clock: FakeClock) -> None:
        registry = CircuitBreakerRegistry(
            CircuitBreakerSettings(failure_threshold=1), clock=fake_clock
        )

        with pytest.raises(UpstreamTransportError):
            await registry.get(ENDPOINT).execute(_boom)

        states = registry.states()
        assert states[ENDPOINT].state is CircuitState.OPEN
        assert await registry.get("https://proxy-b.example/jsonrpc").execute(_ok) == "ok"
