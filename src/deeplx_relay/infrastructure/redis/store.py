# src/deeplx_relay/infrastructure/redis/store.py
"""
使用 Redis 实现 `KeyValueStore` 接口。

所有键都带统一前缀，例如 `deeplx:cache:...`、`deeplx:rate_limit:...`。
Redis 错误被包装为 `DurableStoreError` 抛出，由上层决定如何降级。
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from deeplx_relay.core.exceptions import DurableStoreError


class RedisKeyValueStore:
    """基于 Redis 的持久化键值存储。"""

    def __init__(self, client: aioredis.Redis, key_prefix: str = "deeplx:"):
        self._client = client
        self._prefix = key_prefix
        self._logger = structlog.get_logger(__name__)

    async def get(self, key: str) -> str | None:
        try:
            raw_value = await self._client.get(self._prefix + key)
        except aioredis.RedisError as e:
            self._logger.error(
                "Redis 操作失败", operation="get", key=key, error=str(e)
            )
            raise DurableStoreError(f"Redis get 失败：{e}") from e
        if raw_value is None:
            return None
        if isinstance(raw_value, bytes):
            return raw_value.decode("utf-8")
        return raw_value

    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            await self._client.set(self._prefix + key, value, ex=ttl_seconds)
        except aioredis.RedisError as e:
            self._logger.error(
                "Redis 写入操作失败",
                operation="set",
                key=key,
                ttl=ttl_seconds,
                error=str(e),
            )
            raise DurableStoreError(f"Redis set 失败：{e}") from e
