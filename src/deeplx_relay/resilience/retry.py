# src/deeplx_relay/resilience/retry.py
"""带指数退避的重试驱动器。"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import structlog

from deeplx_relay.config import RetryPolicySettings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, BaseException, float], None]


def compute_delay(attempt: int, policy: RetryPolicySettings) -> float:
    """第 `attempt` 次（从 0 开始）失败后的等待秒数，封顶于 max_delay。"""
    return min(policy.initial_delay * (policy.backoff_factor**attempt), policy.max_delay)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicySettings,
    is_retryable: Callable[[BaseException], bool],
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """
    执行 `operation`，对可重试的失败按指数退避重试。

    共尝试 `max_retries + 1` 次（max_retries <= 0 时只尝试一次）；不可重试的错误
    立即抛出；最后一次尝试失败后抛出该次的错误。
    """
    max_attempts = max(policy.max_retries, 0) + 1
    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt + 1 >= max_attempts:
                logger.warning(
                    "重试次数已耗尽。", attempts=max_attempts, error=str(e)
                )
                raise
            delay = compute_delay(attempt, policy)
            logger.debug(
                "可重试错误，准备退避后重试。",
                attempt=attempt + 1,
                delay=delay,
                error=str(e),
            )
            if on_retry is not None:
                on_retry(attempt, e, delay)
            await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
