# tests/integration/cli/conftest.py
"""为 CLI 集成测试提供 Fixtures。"""

from collections.abc import Callable

import pytest
from dependency_injector import providers
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from deeplx_relay.config import RelaySettings
from deeplx_relay.di.container import AppContainer
from deeplx_relay.infrastructure.upstream.transport import UpstreamTransport
from tests.helpers.fakes import ScriptedUpstream, json_response, upstream_success


@pytest.fixture
def cli_runner() -> CliRunner:
    """提供一个 Typer CliRunner 实例用于模拟命令行调用。"""
    return CliRunner()


@pytest.fixture
def upstream() -> ScriptedUpstream:
    """默认返回成功应答的模拟上游；测试可以替换其脚本。"""
    return ScriptedUpstream(json_response(upstream_success("你好世界", lang="EN")))


@pytest.fixture
def mock_cli_container(
    mocker: MockerFixture, upstream: ScriptedUpstream
) -> Callable[..., AppContainer]:
    """
    替换 CLI 入口使用的 `create_container`：
    容器照常装配，但上游传输层指向模拟上游，且不重新配置日志。
    """

    def factory(config: RelaySettings, **_: object) -> AppContainer:
        container = AppContainer()
        container.config.override(config)
        container.transport.override(
            providers.Object(UpstreamTransport(client=upstream.client()))
        )
        return container

    mocker.patch(
        "deeplx_relay.presentation.cli.main.create_container", side_effect=factory
    )
    return factory
