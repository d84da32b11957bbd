# src/deeplx_relay/presentation/cli/commands/maintenance.py
"""维护类 CLI 命令。"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from deeplx_relay.di.container import AppContainer

from .._utils import get_orchestrator

console = Console()


async def _purge(container: AppContainer) -> dict[str, int]:
    async with get_orchestrator(container) as orchestrator:
        return orchestrator.purge_expired_memory_state()


def purge(ctx: typer.Context) -> None:
    """清理限流快速缓存与本地翻译缓存中的过期条目。"""
    container: AppContainer = ctx.obj
    counts = asyncio.run(_purge(container))

    table = Table(title="内存状态清理结果")
    table.add_column("类别", style="cyan")
    table.add_column("清理条目数", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)
    console.print("[green]✅ 清理完成。[/green]")
