# src/deeplx_relay/observability/logging_config.py
"""
集中配置项目日志系统：structlog ⇄ 标准 logging，并与 Rich 集成。

提供两种输出：
- console：开发环境的面板式人类友好输出（本地时间）。
- json   ：生产环境的结构化日志（ISO-8601 且 UTC）。

所有日志事件中的 `error` 字段都会经过脱敏（IP、邮箱、长哈希），
避免把上游原始载荷或调用方身份写进日志。
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Literal

import structlog
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

from deeplx_relay.resilience.classifier import sanitize_error_message

if TYPE_CHECKING:
    from deeplx_relay.config import RelaySettings

APP_LOGGER_NAME = "deeplx_relay"
_SANITIZED_KEYS = ("error", "reason")


def sanitize_error_fields(
    logger: Any, name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog 处理器：对可能携带敏感信息的字段做脱敏。"""
    for key in _SANITIZED_KEYS:
        value = event_dict.get(key)
        if value is not None:
            event_dict[key] = sanitize_error_message(str(value))
    return event_dict


class RequestPanelRenderer:
    """
    structlog 处理器：console 模式下把每条日志渲染为一个 Rich 面板。

    绑定了 `request_id` 的事件会把它放进标题，方便在重试与降级日志中追踪同一次翻译。
    """

    _LEVEL_STYLES: dict[str, str] = {
        "debug": "cyan",
        "info": "green",
        "warning": "yellow",
        "error": "bold red",
        "critical": "magenta",
    }

    def __init__(self, *, show_timestamp: bool = True) -> None:
        self._console = Console()
        self._show_timestamp = show_timestamp
        self._is_first_render = True

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        if not event:
            return ""

        level = str(event_dict.pop("level", "info")).lower()
        style = self._LEVEL_STYLES.get(level, "dim")
        title = Text(f"{level.upper():<8}", style=style)
        title.append(f" ({event_dict.pop('logger', 'unknown')})", style="cyan dim")
        request_id = event_dict.pop("request_id", None)
        if request_id:
            title.append(f" #{str(request_id)[:8]}", style="dim")

        timestamp = event_dict.pop("timestamp", "")
        for internal in ("_record", "_logger"):
            event_dict.pop(internal, None)

        body: list[Any] = [Text(event)]
        if event_dict:
            fields = Table.grid(padding=(0, 1))
            fields.add_column(style="dim", justify="right")
            fields.add_column(overflow="fold")
            for key, value in sorted(event_dict.items()):
                fields.add_row(
                    f"{key} :", Text(value if isinstance(value, str) else repr(value))
                )
            body.append(fields)

        with self._console.capture() as capture:
            self._console.print(
                Panel(
                    Group(*body),
                    title=title,
                    title_align="left",
                    subtitle=Text(str(timestamp), style="dim")
                    if self._show_timestamp and timestamp
                    else None,
                    subtitle_align="right",
                    border_style=style,
                    expand=False,
                )
            )
        rendered = capture.get().rstrip()

        # 首次输出前空一行，避免与命令行提示粘连
        if self._is_first_render:
            self._is_first_render = False
            return f"\n{rendered}"
        return rendered


def setup_logging(
    *,
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    service: str | None = None,
) -> None:
    """
    配置全局 structlog 日志系统。

    Args:
        log_level: 应用 logger 的最低级别（DEBUG/INFO/WARNING/ERROR/CRITICAL）。
        log_format: 'console'（开发美观输出）或 'json'（生产结构化输出）。
        service: 统一绑定到日志的服务名（通过 contextvars 注入）。

    根 logger 固定为 WARNING，httpx/redis 等第三方 logger 同样下调到 WARNING。
    """
    timestamper = (
        structlog.processors.TimeStamper(fmt="iso", utc=True)
        if log_format == "json"
        else structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        sanitize_error_fields,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final_renderer: Processor
    if log_format == "console":
        final_renderer = RequestPanelRenderer()
    else:
        final_renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_renderer,
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            timestamper,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())
    app_logger.propagate = True

    structlog.contextvars.clear_contextvars()
    if service:
        structlog.contextvars.bind_contextvars(service=service)

    for noisy in ("httpx", "httpcore", "redis", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.get_logger("deeplx_relay.logging_config").debug(
        "日志系统已配置完成。",
        log_format=log_format,
        app_log_level=log_level.upper(),
        service=service,
    )


def setup_logging_from_config(cfg: "RelaySettings") -> None:
    """根据 RelaySettings 一键初始化日志系统。"""
    setup_logging(
        log_level=cfg.logging.level,
        log_format=cfg.logging.format,
        service=cfg.service_name,
    )
