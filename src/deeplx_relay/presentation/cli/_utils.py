# src/deeplx_relay/presentation/cli/_utils.py
"""
CLI 内部共享的辅助工具，例如用于管理容器资源生命周期的上下文管理器。
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from deeplx_relay.application.query import QueryOrchestrator
from deeplx_relay.bootstrap import shutdown_container
from deeplx_relay.di.container import AppContainer


@asynccontextmanager
async def get_orchestrator(
    container: AppContainer,
) -> AsyncGenerator[QueryOrchestrator, None]:
    """
    在一次 CLI 命令的事件循环内取得编排器，并在结束时释放网络资源。
    """
    orchestrator = container.orchestrator()
    try:
        yield orchestrator
    finally:
        await shutdown_container(container)
