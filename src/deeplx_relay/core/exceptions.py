# src/deeplx_relay/core/exceptions.py
"""
本模块定义了 deeplx-relay 项目中所有自定义的、语义化的异常类型。

每个异常都携带一个显式的 `ErrorKind` 分类标签，以及可选的 HTTP 状态码与
上游协议错误码。是否可重试由 `resilience.classifier` 统一判定，异常本身只
负责携带事实。
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """错误的分类标签。"""

    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_HTTP = "upstream_http"
    UPSTREAM_PROTOCOL = "upstream_protocol"
    CIRCUIT_OPEN = "circuit_open"
    DURABLE_STORE = "durable_store"
    CONFIGURATION = "configuration"


class RelayError(Exception):
    """
    所有 deeplx-relay 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    kind: ErrorKind = ErrorKind.UPSTREAM_TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        upstream_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.upstream_code = upstream_code

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind.value!r}, "
            f"status={self.status!r}, upstream_code={self.upstream_code!r})"
        )


class ValidationError(RelayError):
    """请求参数不合法（空文本、超长、载荷过大、非法语言代码等）。永不重试。"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message, status=400)


class RateLimitedError(RelayError):
    """
    准入控制拒绝了本次尝试。
    `dimension` 指明是客户端维度还是代理维度的令牌桶耗尽。
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, *, dimension: str) -> None:
        super().__init__(message, status=429)
        self.dimension = dimension


class UpstreamTimeoutError(RelayError):
    """单次上游调用超过了硬性截止时间。"""

    kind = ErrorKind.UPSTREAM_TIMEOUT

    def __init__(self, message: str) -> None:
        super().__init__(message, status=408)


class UpstreamTransportError(RelayError):
    """连接被拒绝、DNS 失败、连接中断等传输层错误。"""

    kind = ErrorKind.UPSTREAM_TRANSPORT


class UpstreamHttpError(RelayError):
    """上游返回了非 2xx 的 HTTP 状态码。"""

    kind = ErrorKind.UPSTREAM_HTTP

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message, status=status)


class UpstreamProtocolError(RelayError):
    """上游以 JSON-RPC 错误结构应答，或应答结构无法解析。"""

    kind = ErrorKind.UPSTREAM_PROTOCOL

    def __init__(
        self,
        message: str,
        *,
        upstream_code: int | None,
        original_message: str | None = None,
    ) -> None:
        super().__init__(message, upstream_code=upstream_code)
        self.original_message = original_message


class CircuitOpenError(RelayError):
    """目标上游的熔断器处于 OPEN 状态，调用被短路。"""

    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message, status=503)
        self.endpoint = endpoint


class DurableStoreError(RelayError):
    """持久化键值存储读写失败。只记录日志，从不暴露给调用方。"""

    kind = ErrorKind.DURABLE_STORE


class ConfigurationError(RelayError):
    """
    表示在加载、解析或验证配置时发生的错误。
    例如，Redis URL 格式不正确。
    """

    kind = ErrorKind.CONFIGURATION
