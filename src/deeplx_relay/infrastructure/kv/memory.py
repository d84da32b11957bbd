# src/deeplx_relay/infrastructure/kv/memory.py
"""
进程内的 `KeyValueStore` 实现。

未配置 Redis 时使用；也用于测试。过期时间在读取时惰性检查。
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class MemoryKeyValueStore:
    """基于字典的键值存储，支持按键 TTL。"""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, expires_at)
        logger.debug("内存存储已写入。", key=key, ttl=ttl_seconds)

    def __len__(self) -> int:
        return len(self._data)
