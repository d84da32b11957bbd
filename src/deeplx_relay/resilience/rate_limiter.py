# src/deeplx_relay/resilience/rate_limiter.py
"""
本模块提供一个双维度的令牌桶准入控制器。

- 客户端维度（`rate_limit:<client>`）：桶容量随已配置的代理数量动态变化；
- 代理维度（`proxy_rate_limit:<url>`）：每个代理端点一个固定容量的桶。

状态分两级存放：进程内的短 TTL 快速缓存（cachetools.TTLCache）与持久化
键值存储。持久化写入在后台进行；读取失败或数据损坏时按“满桶”处理（fail open）。
并发准入之间没有加锁，可能出现轻微的超额放行，这是可接受的近似。
"""

from __future__ import annotations

import json
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from cachetools import TTLCache
from pydantic import ValidationError as PydanticValidationError

from deeplx_relay.config import RateLimitSettings
from deeplx_relay.core.interfaces import KeyValueStore
from deeplx_relay.core.types import DIRECT_API_URL, RateLimitBucket
from deeplx_relay.infrastructure.background import BackgroundTasks

logger = structlog.get_logger(__name__)


class LimitDimension(str, Enum):
    """准入控制的两个独立维度。"""

    CLIENT = "client"
    PROXY = "proxy"

    @property
    def key_prefix(self) -> str:
        return "rate_limit:" if self is LimitDimension.CLIENT else "proxy_rate_limit:"


@dataclass(frozen=True)
class BucketPolicy:
    max_tokens: float
    refill_rate: float  # 每秒补充的令牌数


@dataclass(frozen=True)
class AdmissionResult:
    allowed: bool
    remaining_tokens: int


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    reason: str | None = None
    dimension: LimitDimension | None = None


class RateLimiter:
    """一个基于令牌桶算法、两级存储的异步准入控制器。"""

    def __init__(
        self,
        store: KeyValueStore,
        settings: RateLimitSettings,
        background: BackgroundTasks,
        *,
        proxy_count: int = 0,
        direct_url: str = DIRECT_API_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._settings = settings
        self._background = background
        self._direct_url = direct_url
        self._clock = clock
        self._fast_cache: TTLCache[str, RateLimitBucket] = TTLCache(
            maxsize=settings.fast_cache_maxsize,
            ttl=settings.fast_cache_ttl,
            timer=clock,
        )
        self._client_policy = self._derive_client_policy(proxy_count)
        self._proxy_policy = BucketPolicy(
            max_tokens=settings.proxy_max_tokens,
            refill_rate=settings.proxy_tokens_per_second,
        )

    def _derive_client_policy(self, proxy_count: int) -> BucketPolicy:
        if proxy_count > 0:
            max_tokens = proxy_count * self._settings.proxy_tokens_per_second * 60
        else:
            max_tokens = self._settings.base_tokens_per_minute
        return BucketPolicy(max_tokens=max_tokens, refill_rate=max_tokens / 60)

    def policy_for(self, dimension: LimitDimension) -> BucketPolicy:
        if dimension is LimitDimension.CLIENT:
            return self._client_policy
        return self._proxy_policy

    async def admit(self, subject_id: str, dimension: LimitDimension) -> AdmissionResult:
        """检查并（在允许时）消耗主体对应桶中的一个令牌。"""
        policy = self.policy_for(dimension)
        key = f"{dimension.key_prefix}{subject_id}"
        try:
            now = self._clock()
            bucket = self._fast_cache.get(key)
            if bucket is None:
                bucket = await self._load_bucket(key, policy, now)

            elapsed = max(0.0, now - bucket.last_refill)
            tokens = min(policy.max_tokens, bucket.tokens + elapsed * policy.refill_rate)

            if tokens < 1:
                self._save_bucket(key, RateLimitBucket(tokens=tokens, last_refill=now))
                logger.debug("令牌桶已耗尽，拒绝准入。", key=key, tokens=tokens)
                return AdmissionResult(allowed=False, remaining_tokens=0)

            tokens -= 1
            self._save_bucket(key, RateLimitBucket(tokens=tokens, last_refill=now))
            return AdmissionResult(allowed=True, remaining_tokens=math.floor(tokens))
        except Exception as e:
            logger.warning(
                "限流检查发生意外错误，放行本次请求。", key=key, error=str(e)
            )
            return AdmissionResult(
                allowed=True, remaining_tokens=math.floor(policy.max_tokens)
            )

    async def check_combined(
        self, client_id: str, endpoint: str
    ) -> AdmissionDecision:
        """先检查客户端维度；若目标不是直连地址，再检查代理维度。"""
        client_result = await self.admit(client_id, LimitDimension.CLIENT)
        if not client_result.allowed:
            return AdmissionDecision(
                allowed=False,
                reason="Client rate limit exceeded",
                dimension=LimitDimension.CLIENT,
            )

        if endpoint != self._direct_url:
            proxy_result = await self.admit(endpoint, LimitDimension.PROXY)
            if not proxy_result.allowed:
                return AdmissionDecision(
                    allowed=False,
                    reason="Proxy rate limit exceeded",
                    dimension=LimitDimension.PROXY,
                )

        return AdmissionDecision(allowed=True)

    def purge_expired(self) -> int:
        """清理快速缓存中已过期的条目，返回清理数量。"""
        # TTLCache.__len__ 自身会触发过期清理，只能以 expire() 的返回值计数
        return len(self._fast_cache.expire())

    async def _load_bucket(
        self, key: str, policy: BucketPolicy, now: float
    ) -> RateLimitBucket:
        try:
            raw = await self._store.get(key)
        except Exception as e:
            logger.warning("读取持久化令牌桶失败，按满桶处理。", key=key, error=str(e))
            return RateLimitBucket(tokens=policy.max_tokens, last_refill=now)

        if raw is None:
            return RateLimitBucket(tokens=policy.max_tokens, last_refill=now)
        try:
            data = json.loads(raw)
            return RateLimitBucket(
                tokens=data["tokens"], last_refill=data["last_refill"]
            )
        except (json.JSONDecodeError, KeyError, TypeError, PydanticValidationError):
            logger.warning("持久化令牌桶数据损坏，按满桶处理。", key=key)
            return RateLimitBucket(tokens=policy.max_tokens, last_refill=now)

    def _save_bucket(self, key: str, bucket: RateLimitBucket) -> None:
        self._fast_cache[key] = bucket
        self._background.spawn(
            self._store.put(
                key, bucket.model_dump_json(), ttl_seconds=self._settings.state_ttl
            ),
            name=f"rate-limit-persist:{key}",
        )
