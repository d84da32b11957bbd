# tests/unit/test_config.py
"""
针对 `deeplx_relay.config` 的单元测试：默认值、环境变量覆盖与校验器。
"""

import pytest
from pydantic import ValidationError

from deeplx_relay.config import RelaySettings, RetryPolicySettings, UpstreamSettings
from deeplx_relay.core.types import DIRECT_API_URL


def test_defaults_match_documented_policy() -> None:
    cfg = RelaySettings()
    assert cfg.upstream.api_url == DIRECT_API_URL
    assert cfg.upstream.request_timeout == 10.0
    assert cfg.rate_limit.proxy_tokens_per_second == 8
    assert cfg.rate_limit.proxy_max_tokens == 16
    assert cfg.rate_limit.base_tokens_per_minute == 480
    assert cfg.rate_limit.state_ttl == 3600
    assert cfg.cache.ttl == 3600
    assert cfg.cache.maxsize == 1000
    assert cfg.payload.max_text_length == 5000
    assert cfg.payload.max_request_size == 32768
    assert cfg.retry_policy.max_retries == 3
    assert cfg.circuit_breaker.failure_threshold == 5
    assert cfg.circuit_breaker.recovery_timeout == 30.0
    assert cfg.circuit_breaker.success_threshold == 3
    assert cfg.redis.url is None


def test_nested_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEEPLX_UPSTREAM__PROXY_URLS", "https://a.example,https://b.example")
    monkeypatch.setenv("DEEPLX_RETRY_POLICY__MAX_RETRIES", "5")
    monkeypatch.setenv("DEEPLX_LOGGING__FORMAT", "json")

    cfg = RelaySettings()

    assert cfg.upstream.proxy_urls == "https://a.example,https://b.example"
    assert cfg.retry_policy.max_retries == 5
    assert cfg.logging.format == "json"


def test_retry_policy_rejects_inconsistent_delays() -> None:
    with pytest.raises(ValidationError, match="max_delay 必须大于或等于 initial_delay"):
        RetryPolicySettings(initial_delay=10, max_delay=1)


def test_upstream_url_must_be_http() -> None:
    with pytest.raises(ValidationError, match="非法上游地址"):
        UpstreamSettings(api_url="ftp://example.com")
