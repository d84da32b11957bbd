# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

import os
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture
from rich.console import Console

from deeplx_relay.config import RelaySettings
from deeplx_relay.infrastructure.background import BackgroundTasks
from deeplx_relay.infrastructure.kv.memory import MemoryKeyValueStore
from tests.helpers.fakes import FakeClock


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """清除可能影响配置加载的 DEEPLX_ 环境变量。"""
    for key in list(os.environ):
        if key.startswith("DEEPLX_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> RelaySettings:
    """提供一个与环境无关的默认配置。"""
    return RelaySettings()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock: FakeClock) -> MemoryKeyValueStore:
    return MemoryKeyValueStore(clock=fake_clock)


@pytest_asyncio.fixture
async def background() -> AsyncGenerator[BackgroundTasks, None]:
    tasks = BackgroundTasks()
    yield tasks
    await tasks.drain()
