# src/deeplx_relay/infrastructure/background.py
"""
即发即弃（fire-and-forget）后台任务集合。

持有已调度任务的强引用，防止被垃圾回收；任务失败只记录日志，不会传播给调用方。
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundTasks:
    """在当前事件循环中调度后台写入，并在关闭/测试时统一等待。"""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "后台任务执行失败，已忽略。",
                task_name=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """等待所有已调度任务结束（包括失败的任务）。"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # 让 done 回调有机会执行
            await asyncio.sleep(0)
