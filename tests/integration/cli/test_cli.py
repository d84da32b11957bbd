# tests/integration/cli/test_cli.py
"""测试 CLI 主入口点与 translate / debug / stats / purge 命令。"""

import pytest
from typer.testing import CliRunner

from deeplx_relay import __version__
from deeplx_relay.presentation.cli.main import app
from tests.helpers.fakes import ScriptedUpstream, json_response


def test_version_option(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
    assert "deeplx-relay" in result.stdout


def test_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "translate" in result.stdout
    assert "purge" in result.stdout
    assert "stats" in result.stdout


def test_config_load_failure_exits_gracefully(
    cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    """配置校验失败时，CLI 应优雅退出并给出提示。"""
    monkeypatch.setenv("DEEPLX_UPSTREAM__API_URL", "ftp://invalid.example")
    result = cli_runner.invoke(app, ["purge"])
    assert result.exit_code == 1
    assert "启动失败" in result.stdout


@pytest.mark.usefixtures("mock_cli_container")
class TestTranslateCommand:
    def test_success_prints_result_envelope(
        self, cli_runner: CliRunner, upstream: ScriptedUpstream
    ) -> None:
        result = cli_runner.invoke(app, ["translate", "Hello world", "--target", "zh"])

        assert result.exit_code == 0, result.stdout
        assert "翻译结果" in result.stdout
        assert '"code": 200' in result.stdout
        assert "你好世界" in result.stdout
        assert upstream.call_count == 1

    def test_upstream_failure_exits_with_error(
        self, cli_runner: CliRunner, upstream: ScriptedUpstream
    ) -> None:
        upstream.steps = [json_response("bad request", status_code=400)]

        result = cli_runner.invoke(app, ["translate", "Hello"])

        assert result.exit_code == 1
        assert "翻译失败" in result.stdout
        assert '"code": 400' in result.stdout

    def test_invalid_language_is_rejected_before_translation(
        self, cli_runner: CliRunner, upstream: ScriptedUpstream
    ) -> None:
        result = cli_runner.invoke(app, ["translate", "Hello", "-t", "not_a_lang"])

        assert result.exit_code == 1
        assert "参数错误" in result.stdout
        assert upstream.call_count == 0

    def test_explicit_proxy_is_used(
        self, cli_runner: CliRunner, upstream: ScriptedUpstream
    ) -> None:
        result = cli_runner.invoke(
            app, ["translate", "Hello", "--proxy", "https://proxy-a.example/jsonrpc"]
        )

        assert result.exit_code == 0, result.stdout
        assert str(upstream.requests[0].url) == "https://proxy-a.example/jsonrpc"


@pytest.mark.usefixtures("mock_cli_container")
def test_debug_renders_payload_without_sending(
    cli_runner: CliRunner, upstream: ScriptedUpstream
) -> None:
    result = cli_runner.invoke(app, ["debug", "Hi there", "-s", "en", "-t", "de"])

    assert result.exit_code == 0, result.stdout
    assert "上游请求体" in result.stdout
    assert "i_count" in result.stdout
    assert "LMT_handle_texts" in result.stdout
    assert upstream.call_count == 0


@pytest.mark.usefixtures("mock_cli_container")
def test_stats_summarizes_repeated_translations(
    cli_runner: CliRunner, upstream: ScriptedUpstream
) -> None:
    result = cli_runner.invoke(app, ["stats", "Hello", "-n", "3"])

    assert result.exit_code == 0, result.stdout
    assert "性能统计" in result.stdout
    assert "cache_hit_rate" in result.stdout
    assert "66.67" in result.stdout
    # 后两次命中缓存
    assert upstream.call_count == 1


@pytest.mark.usefixtures("mock_cli_container")
def test_purge_reports_counts(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["purge"])

    assert result.exit_code == 0, result.stdout
    assert "rate_limit_entries" in result.stdout
    assert "清理完成" in result.stdout
