# src/deeplx_relay/presentation/cli/main.py
"""deeplx-relay CLI 的主入口点。"""

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.traceback import install as install_rich_tracebacks

import deeplx_relay
from deeplx_relay.bootstrap import create_app_config, create_container

from .commands import maintenance, translate

install_rich_tracebacks(show_locals=False, word_wrap=True)

app = typer.Typer(
    name="deeplx-relay",
    help="🌐 deeplx-relay: 一个带限流、缓存、熔断与重试的 DeepL 翻译中继。",
    add_completion=False,
    no_args_is_help=True,
)

app.command("translate")(translate.translate)
app.command("debug")(translate.debug)
app.command("stats")(translate.stats)
app.command("purge")(maintenance.purge)

console = Console()


def version_callback(value: bool) -> None:
    """处理 --version 选项的回调函数。"""
    if value:
        console.print(
            f"deeplx-relay [bold cyan]v{deeplx_relay.__version__}[/bold cyan]"
        )
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="显示版本信息并退出。",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    env_file: Annotated[
        Optional[str], typer.Option("--env-file", help="要加载的 .env 文件路径。")
    ] = None,
) -> None:
    """
    主回调函数，负责加载配置并创建 DI 容器，供所有子命令通过 ctx.obj 使用。
    """
    try:
        config = create_app_config(env_file)
        ctx.obj = create_container(config)
    except Exception as e:
        console.print("[bold red]❌ 启动失败：无法加载配置或初始化容器。[/bold red]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
