# src/deeplx_relay/resilience/classifier.py
"""
错误分类器：把原始失败映射为“可重试 / 致命”两类，并给出对齐 HTTP 的状态码。

规则：
- 传输层中断与超时可重试；
- HTTP 408/429/500/502/503/504 可重试，其他状态码致命；
- 上游协议错误码 429/500/502/503/504 可重试，其他错误码致命；
- 校验错误、熔断打开、客户端维度的限流拒绝一律致命；
- 代理维度的限流拒绝可重试（下一次尝试可能选中另一个代理）；
- 无法识别状态码/错误码的未知错误按可重试处理。
"""

from __future__ import annotations

import asyncio
import re

import httpx

from deeplx_relay.core.exceptions import (
    ErrorKind,
    RateLimitedError,
    RelayError,
)
from deeplx_relay.resilience.rate_limiter import LimitDimension

RETRYABLE_HTTP_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
RETRYABLE_PROTOCOL_CODES = frozenset({429, 500, 502, 503, 504})

_FATAL_KINDS = frozenset(
    {ErrorKind.VALIDATION, ErrorKind.CIRCUIT_OPEN, ErrorKind.CONFIGURATION}
)
_ALWAYS_RETRYABLE_KINDS = frozenset(
    {ErrorKind.UPSTREAM_TIMEOUT, ErrorKind.UPSTREAM_TRANSPORT}
)

_MAX_SANITIZED_LENGTH = 500
_IPV4_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_HASH_PATTERN = re.compile(r"\b[a-fA-F0-9]{32,}\b")


def _is_valid_http_status(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 200 <= value <= 599


def is_retryable(error: BaseException) -> bool:
    """判断一个失败是否值得再试一次。"""
    if isinstance(error, RateLimitedError):
        return error.dimension == LimitDimension.PROXY.value

    if isinstance(error, RelayError):
        if error.kind in _FATAL_KINDS:
            return False
        if error.kind in _ALWAYS_RETRYABLE_KINDS:
            return True
        if error.kind is ErrorKind.UPSTREAM_HTTP:
            return error.status in RETRYABLE_HTTP_STATUSES
        if error.kind is ErrorKind.UPSTREAM_PROTOCOL:
            if error.upstream_code is None:
                return True
            return error.upstream_code in RETRYABLE_PROTOCOL_CODES
        if error.status is not None:
            return error.status in RETRYABLE_HTTP_STATUSES
        return True

    # httpx 传输异常、asyncio 超时以及任何未知错误
    return True


def http_status(error: BaseException) -> int:
    """
    为失败选出对调用方可见的状态码：
    显式 HTTP 状态优先，其次为合法的上游协议错误码，否则为 500。
    """
    if isinstance(error, RelayError):
        if _is_valid_http_status(error.status):
            return int(error.status)  # type: ignore[arg-type]
        if _is_valid_http_status(error.upstream_code):
            return int(error.upstream_code)  # type: ignore[arg-type]
        return 500
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return 408
    return 500


def sanitize_error_message(message: str | None) -> str:
    """屏蔽 IP、邮箱与长哈希，并把长度截断到 500 个字符。"""
    if not message:
        return "Unknown error"
    sanitized = _IPV4_PATTERN.sub("[IP]", message)
    sanitized = _EMAIL_PATTERN.sub("[EMAIL]", sanitized)
    sanitized = _HASH_PATTERN.sub("[HASH]", sanitized)
    return sanitized[:_MAX_SANITIZED_LENGTH]
