# src/deeplx_relay/core/__init__.py
"""
本核心包定义了 deeplx-relay 中最基础、最稳定的构建块。

这里包含了系统的核心数据类型、接口协议和自定义异常，它们共同构成了
整个应用的“契约”。本包不依赖于项目中的任何其他模块。
"""

from .exceptions import (
    CircuitOpenError,
    ConfigurationError,
    DurableStoreError,
    ErrorKind,
    RateLimitedError,
    RelayError,
    UpstreamHttpError,
    UpstreamProtocolError,
    UpstreamTimeoutError,
    UpstreamTransportError,
    ValidationError,
)
from .interfaces import KeyValueStore, MetricsSink
from .types import (
    DIRECT_API_URL,
    CacheEntry,
    CircuitBreakerState,
    CircuitState,
    ProxyEndpoint,
    QueryOptions,
    RateLimitBucket,
    StandardResult,
    TranslationRequest,
)

__all__ = [
    # from exceptions.py
    "ErrorKind",
    "RelayError",
    "ValidationError",
    "RateLimitedError",
    "UpstreamTimeoutError",
    "UpstreamTransportError",
    "UpstreamHttpError",
    "UpstreamProtocolError",
    "CircuitOpenError",
    "DurableStoreError",
    "ConfigurationError",
    # from interfaces.py
    "KeyValueStore",
    "MetricsSink",
    # from types.py
    "DIRECT_API_URL",
    "TranslationRequest",
    "QueryOptions",
    "StandardResult",
    "CacheEntry",
    "RateLimitBucket",
    "ProxyEndpoint",
    "CircuitState",
    "CircuitBreakerState",
]
