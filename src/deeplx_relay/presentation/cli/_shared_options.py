# src/deeplx_relay/presentation/cli/_shared_options.py
"""
CLI 共享参数定义。

使用 typing.Annotated 为可复用的 CLI 参数提供单一事实来源，
保证各命令中同名参数的帮助文本与短名称一致。
"""
from __future__ import annotations

from typing import Annotated, Optional

import typer

TEXT_ARGUMENT = Annotated[str, typer.Argument(help="要翻译的文本。")]

SOURCE_LANG_OPTION = Annotated[
    str, typer.Option("--source", "-s", help="源语言代码，'auto' 表示自动检测。")
]

TARGET_LANG_OPTION = Annotated[
    str, typer.Option("--target", "-t", help="目标语言代码。")
]

PROXY_OPTION = Annotated[
    Optional[str],
    typer.Option("--proxy", help="强制使用的上游端点（覆盖随机选择）。"),
]

CLIENT_IP_OPTION = Annotated[
    Optional[str],
    typer.Option("--client-ip", help="以该客户端身份参与限流计数。"),
]
