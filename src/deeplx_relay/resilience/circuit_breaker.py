# src/deeplx_relay/resilience/circuit_breaker.py
"""
按上游身份隔离故障的熔断器，以及持有所有熔断器的进程级注册表。

状态迁移：
    CLOSED --(连续失败达到 failure_threshold)--> OPEN
    OPEN --(距上次失败超过 recovery_timeout)--> HALF_OPEN
    HALF_OPEN --(成功达到 success_threshold)--> CLOSED
    HALF_OPEN --(失败累计达到 failure_threshold)--> OPEN
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TypeVar

import structlog

from deeplx_relay.config import CircuitBreakerSettings
from deeplx_relay.core.exceptions import CircuitOpenError
from deeplx_relay.core.types import CircuitBreakerState, CircuitState

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """单个上游端点的熔断器。"""

    def __init__(
        self,
        endpoint: str,
        settings: CircuitBreakerSettings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.endpoint = endpoint
        self._settings = settings
        self._clock = clock
        self._state = CircuitBreakerState()

    @property
    def state(self) -> CircuitState:
        return self._state.state

    def snapshot(self) -> CircuitBreakerState:
        return replace(self._state)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """在熔断保护下执行一次操作；熔断打开时直接短路，不调用 operation。"""
        if self._state.state is CircuitState.OPEN:
            if self._clock() - self._state.last_failure_time < self._settings.recovery_timeout:
                raise CircuitOpenError(
                    "Circuit breaker is OPEN", endpoint=self.endpoint
                )
            self._state.state = CircuitState.HALF_OPEN
            self._state.success_count = 0
            logger.info("熔断器进入半开状态，放行探测请求。", endpoint=self.endpoint)

        try:
            result = await operation()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state.state is CircuitState.HALF_OPEN:
            self._state.success_count += 1
            if self._state.success_count >= self._settings.success_threshold:
                self._state.state = CircuitState.CLOSED
                self._state.failure_count = 0
                logger.info("熔断器已关闭。", endpoint=self.endpoint)
        else:
            self._state.failure_count = 0

    def _on_failure(self) -> None:
        self._state.failure_count += 1
        self._state.last_failure_time = self._clock()
        if (
            self._state.failure_count >= self._settings.failure_threshold
            and self._state.state is not CircuitState.OPEN
        ):
            self._state.state = CircuitState.OPEN
            logger.warning(
                "熔断器已打开。",
                endpoint=self.endpoint,
                failure_count=self._state.failure_count,
            )


class CircuitBreakerRegistry:
    """
    以端点 URL 为键的熔断器注册表。

    一致性约定：仅在单个事件循环内使用；`get` 的查找与插入之间没有 await，
    因此同一 URL 只会创建一个熔断器。熔断器内部计数在并发请求间不加锁，
    属于尽力而为的近似。
    """

    def __init__(
        self,
        settings: CircuitBreakerSettings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, endpoint: str) -> CircuitBreaker:
        breaker = self._breakers.get(endpoint)
        if breaker is None:
            breaker = CircuitBreaker(endpoint, self._settings, clock=self._clock)
            self._breakers[endpoint] = breaker
        return breaker

    def states(self) -> dict[str, CircuitBreakerState]:
        return {url: breaker.snapshot() for url, breaker in self._breakers.items()}

    def __len__(self) -> int:
        return len(self._breakers)
