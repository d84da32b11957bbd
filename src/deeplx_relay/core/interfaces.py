# src/deeplx_relay/core/interfaces.py
"""
定义了 deeplx-relay 中外部协作方的抽象接口协议 (Protocols)。
高层模块（如 application 层）应依赖于这些抽象接口，而不是具体的实现类。
"""

from __future__ import annotations

from typing import Any, Protocol


class KeyValueStore(Protocol):
    """定义了持久化键值存储的接口（尽力而为语义）。"""

    async def get(self, key: str) -> str | None:
        """读取一个键；不存在时返回 None。"""
        ...

    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """写入一个键，并可选地设置过期时间（秒）。"""
        ...


class MetricsSink(Protocol):
    """定义了指标输出端的接口。`record` 不得阻塞调用方。"""

    def record(self, event: dict[str, Any]) -> None:
        """提交一条指标事件。"""
        ...
