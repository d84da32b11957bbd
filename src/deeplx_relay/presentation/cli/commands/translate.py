# src/deeplx_relay/presentation/cli/commands/translate.py
"""
翻译相关的 CLI 命令：执行一次翻译，或只构造上游报文用于排查。
"""

import asyncio
import json
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from deeplx_relay.application.intake import parse_translate_payload
from deeplx_relay.core.exceptions import ValidationError
from deeplx_relay.core.types import QueryOptions, StandardResult, TranslationRequest
from deeplx_relay.di.container import AppContainer
from deeplx_relay.domain.wire import count_letter_i

from .._shared_options import (
    CLIENT_IP_OPTION,
    PROXY_OPTION,
    SOURCE_LANG_OPTION,
    TARGET_LANG_OPTION,
    TEXT_ARGUMENT,
)
from .._utils import get_orchestrator

console = Console()


def _parse_request(
    container: AppContainer, text: str, source: str, target: str
) -> TranslationRequest:
    config = container.config()
    try:
        return parse_translate_payload(
            {"text": text, "source_lang": source, "target_lang": target},
            max_text_length=config.payload.max_text_length,
        )
    except ValidationError as e:
        console.print(f"[bold red]❌ 参数错误: {e.message}[/bold red]")
        raise typer.Exit(code=1)


async def _run_translation(
    container: AppContainer, request: TranslationRequest, options: QueryOptions
) -> StandardResult:
    async with get_orchestrator(container) as orchestrator:
        return await orchestrator.translate(request, options)


def translate(
    ctx: typer.Context,
    text: TEXT_ARGUMENT,
    source: SOURCE_LANG_OPTION = "auto",
    target: TARGET_LANG_OPTION = "en",
    proxy: PROXY_OPTION = None,
    client_ip: CLIENT_IP_OPTION = None,
) -> None:
    """执行一次翻译，并以 JSON 打印统一结果信封。"""
    container: AppContainer = ctx.obj
    request = _parse_request(container, text, source, target)
    options = QueryOptions(proxy_endpoint=proxy, client_ip=client_ip)

    result = asyncio.run(_run_translation(container, request, options))

    console.print(
        Panel(
            Syntax(
                json.dumps(result.to_dict(), indent=2, ensure_ascii=False),
                "json",
                theme="monokai",
            ),
            title="翻译结果" if result.code == 200 else "翻译失败",
            border_style="green" if result.code == 200 else "red",
            expand=False,
        )
    )
    if result.code != 200:
        raise typer.Exit(code=1)


def debug(
    ctx: typer.Context,
    text: TEXT_ARGUMENT,
    source: SOURCE_LANG_OPTION = "auto",
    target: TARGET_LANG_OPTION = "en",
) -> None:
    """构造上游请求体但不发送，展示 id、时间戳、method 格式与字节数。"""
    container: AppContainer = ctx.obj
    request = _parse_request(container, text, source, target)
    builder = container.builder()

    try:
        payload = builder.build(request.text, request.source_lang, request.target_lang)
        body = builder.render(payload)
    except ValidationError as e:
        console.print(f"[bold red]❌ 无法构造请求体: {e.message}[/bold red]")
        raise typer.Exit(code=1)

    table = Table(title="上游请求体", show_header=False)
    table.add_column("字段", style="cyan")
    table.add_column("值")
    table.add_row("id", str(payload.id))
    table.add_row("timestamp", str(payload.timestamp))
    table.add_row("i_count", str(count_letter_i(request.text or "")))
    table.add_row("method", "spaced" if payload.uses_spaced_method else "default")
    table.add_row("source_lang", payload.source_lang_user_selected)
    table.add_row("target_lang", payload.target_lang)
    table.add_row("bytes", str(len(body.encode("utf-8"))))
    console.print(table)
    console.print(Syntax(body, "json", theme="monokai", word_wrap=True))


async def _run_repeated(
    container: AppContainer,
    request: TranslationRequest,
    options: QueryOptions,
    repeat: int,
) -> dict[str, Any] | None:
    async with get_orchestrator(container) as orchestrator:
        for _ in range(repeat):
            await orchestrator.translate(request, options)
        return orchestrator.tracker.stats()


def stats(
    ctx: typer.Context,
    text: TEXT_ARGUMENT,
    source: SOURCE_LANG_OPTION = "auto",
    target: TARGET_LANG_OPTION = "en",
    proxy: PROXY_OPTION = None,
    client_ip: CLIENT_IP_OPTION = None,
    repeat: Annotated[
        int, typer.Option("--repeat", "-n", min=1, help="连续翻译的次数。")
    ] = 5,
) -> None:
    """连续翻译同一段文本，打印最近请求的性能统计（成功率、缓存命中率等）。"""
    container: AppContainer = ctx.obj
    request = _parse_request(container, text, source, target)
    options = QueryOptions(proxy_endpoint=proxy, client_ip=client_ip)

    summary = asyncio.run(_run_repeated(container, request, options, repeat))
    if summary is None:
        console.print("[yellow]没有可统计的请求。[/yellow]")
        return

    table = Table(title="性能统计")
    table.add_column("指标", style="cyan")
    table.add_column("值", justify="right")
    for name, value in summary.items():
        table.add_row(name, f"{value:.2f}" if isinstance(value, float) else str(value))
    console.print(table)
