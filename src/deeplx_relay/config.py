# src/deeplx_relay/config.py
"""
deeplx-relay 配置（Pydantic v2）

特性:
- 所有数值策略常量（限流速率、熔断阈值、重试参数）均为可调配置，而非不变量。
- 通过 `DEEPLX_` 前缀与 `__` 嵌套分隔符从环境变量加载，例如
  `DEEPLX_UPSTREAM__PROXY_URLS=https://a.example/jsonrpc,https://b.example/jsonrpc`。
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deeplx_relay.core.types import DIRECT_API_URL

# ===================== 子模型 =====================


class UpstreamSettings(BaseModel):
    api_url: str = Field(default=DIRECT_API_URL, description="直连上游的 JSON-RPC 地址")
    proxy_urls: str = Field(default="", description="逗号分隔的代理端点列表")
    request_timeout: float = Field(default=10.0, gt=0, description="单次尝试的硬性截止时间（秒）")

    @field_validator("api_url")
    @classmethod
    def _validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"非法上游地址：{v!r}")
        return v


class RateLimitSettings(BaseModel):
    proxy_tokens_per_second: float = Field(default=8.0, gt=0)
    proxy_max_tokens: float = Field(default=16.0, ge=1)
    base_tokens_per_minute: float = Field(default=480.0, ge=1)
    fast_cache_ttl: float = Field(default=5.0, gt=0)
    fast_cache_maxsize: int = Field(default=10_000, ge=1)
    state_ttl: int = Field(default=3600, ge=1)


class CacheSettings(BaseModel):
    ttl: int = Field(default=3600, ge=1)
    maxsize: int = Field(default=1000, ge=1)


class PayloadSettings(BaseModel):
    max_text_length: int = Field(default=5000, ge=1)
    max_request_size: int = Field(default=32768, ge=256)


class RetryPolicySettings(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    initial_delay: float = Field(default=1.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=30.0, ge=0)

    @model_validator(mode="after")
    def check_delay_consistency(self) -> "RetryPolicySettings":
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay 必须大于或等于 initial_delay")
        return self


class CircuitBreakerSettings(BaseModel):
    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout: float = Field(default=30.0, gt=0)
    success_threshold: int = Field(default=3, ge=1)


class RedisSettings(BaseModel):
    url: Optional[str] = Field(default=None)
    key_prefix: str = Field(default="deeplx:")


class MetricsSettings(BaseModel):
    enabled: bool = Field(default=False)
    stream_name: str = Field(default="deeplx:metrics")
    history_size: int = Field(default=1000, ge=1)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")


# ===================== 顶层配置 =====================
class RelaySettings(BaseSettings):
    """
    deeplx-relay 核心配置模型。
    """

    service_name: str = "deeplx-relay"

    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    payload: PayloadSettings = Field(default_factory=PayloadSettings)
    retry_policy: RetryPolicySettings = Field(default_factory=RetryPolicySettings)
    circuit_breaker: CircuitBreakerSettings = Field(
        default_factory=CircuitBreakerSettings
    )
    redis: RedisSettings = Field(default_factory=RedisSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # --- Pydantic v2 设置 ---
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="DEEPLX_",
        case_sensitive=False,
        extra="ignore",
        env_file_encoding="utf-8",
    )
