# src/deeplx_relay/bootstrap.py
"""
应用引导程序。

负责加载 .env 与环境变量、创建配置对象、初始化日志，并组装 DI 容器。
"""

from __future__ import annotations

from pathlib import Path

import structlog
from dotenv import load_dotenv

from deeplx_relay.config import RelaySettings
from deeplx_relay.di.container import AppContainer
from deeplx_relay.infrastructure.redis._client import close_redis_client
from deeplx_relay.observability.logging_config import setup_logging_from_config

logger = structlog.get_logger("deeplx_relay.bootstrap")


def create_app_config(env_file: str | Path | None = None) -> RelaySettings:
    """加载、验证并返回应用配置对象。已存在的环境变量优先于 .env 文件。"""
    path = Path(env_file) if env_file else Path.cwd() / ".env"
    if path.is_file():
        load_dotenv(path, override=False)
        logger.debug("已加载 .env 文件。", path=str(path))
    return RelaySettings()


def create_container(
    config: RelaySettings, *, configure_logging: bool = True
) -> AppContainer:
    """创建并装配 DI 容器。"""
    container = AppContainer()
    container.config.override(config)
    if configure_logging:
        setup_logging_from_config(config)
    return container


async def shutdown_container(container: AppContainer) -> None:
    """等待后台写入完成，并释放网络资源。"""
    await container.background().drain()
    await container.transport().aclose()
    await close_redis_client(container.redis_client())
