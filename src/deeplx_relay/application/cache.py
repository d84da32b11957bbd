# src/deeplx_relay/application/cache.py
"""
本模块提供两级翻译缓存：进程内 LRU 本地层 + 持久化共享层。

缓存只是优化手段：持久层的任何读写失败都只记录日志，不会影响一次已完成的翻译。
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable

import structlog
from cachetools import LRUCache
from pydantic import ValidationError as PydanticValidationError

from deeplx_relay.config import CacheSettings
from deeplx_relay.core.interfaces import KeyValueStore
from deeplx_relay.core.types import CacheEntry

logger = structlog.get_logger(__name__)

DURABLE_NAMESPACE = "cache:"
_KEY_MAX_LENGTH = 50
_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def _rolling_hash(data: bytes) -> int:
    """32 位有符号滚动哈希：h = (h << 5) - h + byte。"""
    h = 0
    for byte in data:
        h = ((h << 5) - h + byte) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def generate_key(text: str, source_lang: str, target_lang: str) -> str:
    """为 (文本, 源语言, 目标语言) 生成确定性的缓存键，最长 50 个字符。"""
    source = source_lang if source_lang == "auto" else source_lang.upper()
    target = target_lang.upper()
    content = f"{text}:{source}:{target}"
    digest = _to_base36(abs(_rolling_hash(content.encode("utf-8"))))
    return f"cache_{digest}_{source}_{target}"[:_KEY_MAX_LENGTH]


class TranslationCache:
    """一个两级的翻译结果缓存。"""

    def __init__(
        self,
        store: KeyValueStore,
        settings: CacheSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or CacheSettings()
        self._store = store
        self._clock = clock
        self._local: LRUCache[str, CacheEntry] = LRUCache(maxsize=self.settings.maxsize)

    generate_key = staticmethod(generate_key)

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at < self.settings.ttl

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._local.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry

        try:
            raw = await self._store.get(DURABLE_NAMESPACE + key)
        except Exception as e:
            logger.warning("读取持久化缓存失败，按未命中处理。", key=key, error=str(e))
            return None
        if raw is None:
            return None

        try:
            durable_entry = CacheEntry.model_validate(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning("持久化缓存数据损坏，按未命中处理。", key=key, error=str(e))
            return None

        if not self._is_fresh(durable_entry):
            return None
        self._local[key] = durable_entry
        return durable_entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        self._local[key] = entry
        try:
            await self._store.put(
                DURABLE_NAMESPACE + key,
                entry.model_dump_json(),
                ttl_seconds=self.settings.ttl,
            )
        except Exception as e:
            logger.warning("写入持久化缓存失败，已忽略。", key=key, error=str(e))

    def purge_expired(self) -> int:
        """清除本地层中已过期的条目，返回清除数量。"""
        stale = [key for key, entry in self._local.items() if not self._is_fresh(entry)]
        for key in stale:
            self._local.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._local.clear()

    def __len__(self) -> int:
        return len(self._local)
