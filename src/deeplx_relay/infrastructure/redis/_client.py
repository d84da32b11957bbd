# src/deeplx_relay/infrastructure/redis/_client.py
"""
集中管理 Redis 客户端的创建和生命周期。
"""

from __future__ import annotations

import redis.asyncio as aioredis

from deeplx_relay.config import RelaySettings
from deeplx_relay.core.exceptions import ConfigurationError


def create_redis_client(config: RelaySettings) -> aioredis.Redis | None:
    """
    根据配置创建 Redis 异步客户端。

    未配置 URL 时返回 None（调用方应退回到内存存储）。`from_url` 不会立即建立
    连接，连接失败会在首次读写时以 RedisError 的形式出现。
    """
    url = config.redis.url
    if not url:
        return None
    try:
        return aioredis.from_url(url, decode_responses=True)
    except ValueError as e:
        raise ConfigurationError(f"Redis URL 格式不正确：{e}") from e


async def close_redis_client(client: aioredis.Redis | None) -> None:
    """关闭 Redis 客户端连接。"""
    if client is not None:
        await client.aclose()
