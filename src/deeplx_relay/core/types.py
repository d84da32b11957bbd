# src/deeplx_relay/core/types.py
"""
本模块定义了 deeplx-relay 的核心数据类型。
这些类型是各层之间数据交换的契约。
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# 与上游直连时使用的官方 JSON-RPC 端点
DIRECT_API_URL = "https://www2.deepl.com/jsonrpc"


class TranslationRequest(BaseModel):
    """调用方提交的翻译请求，一经接受即不可变。"""

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    source_lang: str = "auto"
    target_lang: str = "en"


class QueryOptions(BaseModel):
    """单次 `translate` 调用的可选参数。"""

    model_config = ConfigDict(frozen=True)

    proxy_endpoint: str | None = None
    custom_headers: dict[str, str] = Field(default_factory=dict)
    client_ip: str | None = None


class StandardResult(BaseModel):
    """
    对外统一的结果信封。
    code 不为 200 时，除 code 与 id 外的字段一律为 null。
    """

    code: int
    data: str | None = None
    id: int
    source_lang: str | None = None
    target_lang: str | None = None

    @classmethod
    def create(
        cls,
        code: int,
        data: str | None,
        id: int | None = None,
        source_lang: str | None = None,
        target_lang: str | None = None,
    ) -> "StandardResult":
        response_id = id or random.randrange(1, 10_000_000_000)
        if code != 200:
            return cls(code=code, data=None, id=response_id)
        return cls(
            code=code,
            data=data,
            id=response_id,
            source_lang=(source_lang or "AUTO").upper(),
            target_lang=(target_lang or "EN").upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class CacheEntry(BaseModel):
    """一条已完成翻译的缓存记录，`created_at` 为 Unix 秒。"""

    data: str
    created_at: float
    source_lang: str | None = None
    target_lang: str | None = None
    id: int | None = None


class RateLimitBucket(BaseModel):
    """令牌桶的持久化形态。"""

    tokens: float
    last_refill: float


class ProxyEndpoint(BaseModel):
    """从静态配置解析得到的上游代理端点。"""

    model_config = ConfigDict(frozen=True)

    url: str


class CircuitState(str, Enum):
    """熔断器的三种状态。"""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerState:
    """单个上游身份的熔断器状态。"""

    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: float = 0.0
