# tests/unit/application/test_query.py
"""
针对 `deeplx_relay.application.query.QueryOrchestrator` 的单元测试。

上游由 httpx.MockTransport 模拟，其余协作方均为真实实现。
"""

import json

import pytest
from pytest_mock import MockerFixture

from deeplx_relay.core.exceptions import ValidationError
from deeplx_relay.core.types import QueryOptions, TranslationRequest
from deeplx_relay.infrastructure.upstream.camouflage import ACCEPT_LANGUAGES
from tests.helpers.factories import PROXY_A, PROXY_B, build_harness, make_settings
from tests.helpers.fakes import (
    FakeMetricsSink,
    ScriptedUpstream,
    json_response,
    upstream_success,
)


def _ok(text: str = "你好世界") -> ScriptedUpstream:
    return ScriptedUpstream(json_response(upstream_success(text, lang="EN")))


@pytest.mark.asyncio
async def test_wire_request_carries_body_and_headers() -> None:
    harness = build_harness(_ok())

    await harness.orchestrator.translate(
        TranslationRequest(text="Hello", source_lang="en", target_lang="zh"),
        QueryOptions(custom_headers={"User-Agent": "custom-agent/1.0"}),
    )

    request = harness.upstream.requests[0]
    assert str(request.url) == "https://www2.deepl.com/jsonrpc"
    assert request.headers["content-type"] == "application/json; charset=utf-8"
    assert request.headers["user-agent"] == "custom-agent/1.0"
    assert request.headers["accept-language"] in ACCEPT_LANGUAGES
    assert request.headers["dnt"] == "1"

    body = json.loads(request.content)
    assert body["method"] == "LMT_handle_texts"
    assert body["params"]["texts"] == [{"text": "Hello", "requestAlternatives": 0}]
    assert body["params"]["lang"] == {
        "source_lang_user_selected": "EN",
        "target_lang": "ZH",
    }


@pytest.mark.asyncio
async def test_explicit_proxy_endpoint_wins() -> None:
    harness = build_harness(_ok(), settings=make_settings(upstream={"proxy_urls": PROXY_A}))

    await harness.orchestrator.translate(
        TranslationRequest(text="Hello"), QueryOptions(proxy_endpoint=PROXY_B)
    )

    assert str(harness.upstream.requests[0].url) == PROXY_B


@pytest.mark.asyncio
async def test_configured_proxies_are_used() -> None:
    harness = build_harness(_ok(), settings=make_settings(upstream={"proxy_urls": PROXY_A}))

    await harness.orchestrator.translate(TranslationRequest(text="Hello"))

    assert str(harness.upstream.requests[0].url) == PROXY_A
    assert harness.orchestrator.tracker.stats()["proxy_usage_rate"] == 100


@pytest.mark.asyncio
async def test_oversized_text_is_rejected_before_transport() -> None:
    harness = build_harness(_ok(), settings=make_settings(payload={"max_text_length": 5}))

    result = await harness.orchestrator.translate(TranslationRequest(text="toolong"))

    assert result.code == 400
    assert result.data is None
    assert harness.upstream.call_count == 0


@pytest.mark.asyncio
async def test_success_populates_cache() -> None:
    harness = build_harness(_ok())
    request = TranslationRequest(text="Hello", source_lang="en", target_lang="zh")

    first = await harness.orchestrator.translate(request)
    second = await harness.orchestrator.translate(request)

    assert first.code == second.code == 200
    assert second.data == "你好世界"
    assert second.id == first.id
    assert harness.upstream.call_count == 1

    key = harness.cache.generate_key("Hello", "EN", "ZH")
    assert await harness.store.get("cache:" + key) is not None


@pytest.mark.asyncio
async def test_missing_upstream_fields_fall_back_to_request_languages() -> None:
    upstream = ScriptedUpstream(json_response(upstream_success("Hallo", lang=None, id=None)))
    harness = build_harness(upstream)

    result = await harness.orchestrator.translate(
        TranslationRequest(text="Hello", source_lang="en", target_lang="de")
    )

    assert result.code == 200
    assert result.source_lang == "EN"
    assert result.target_lang == "DE"
    assert result.id > 0


@pytest.mark.asyncio
async def test_every_call_is_recorded_and_published() -> None:
    sink = FakeMetricsSink()
    harness = build_harness(_ok(), metrics_sink=sink)

    await harness.orchestrator.translate(TranslationRequest(text="Hello"))
    await harness.orchestrator.translate(TranslationRequest(text=None))

    assert [event["code"] for event in sink.events] == [200, 400]
    assert sink.events[0]["success"] is True
    assert sink.events[0]["endpoint"] == "https://www2.deepl.com/jsonrpc"
    stats = harness.orchestrator.tracker.stats()
    assert stats["total_requests"] == 2
    assert stats["successful_requests"] == 1


@pytest.mark.asyncio
async def test_metrics_sink_failure_does_not_affect_result() -> None:
    harness = build_harness(_ok(), metrics_sink=FakeMetricsSink(fail=True))

    result = await harness.orchestrator.translate(TranslationRequest(text="Hello"))

    assert result.code == 200


@pytest.mark.asyncio
async def test_purge_expired_memory_state() -> None:
    harness = build_harness(_ok(), settings=make_settings(cache={"ttl": 60}))
    await harness.orchestrator.translate(TranslationRequest(text="Hello"))
    await harness.background.drain()

    harness.clock.advance(61)

    assert harness.orchestrator.purge_expired_memory_state() == {
        "rate_limit_entries": 1,
        "cache_entries": 1,
    }


@pytest.mark.asyncio
async def test_oversized_body_in_attempt_does_not_trip_breaker(
    mocker: MockerFixture,
) -> None:
    harness = build_harness(_ok())
    builder = harness.orchestrator._builder
    # 预检通过，但本次尝试渲染出的载荷超限
    mocker.patch.object(builder, "validate")
    mocker.patch.object(
        builder,
        "build_body",
        side_effect=ValidationError("Request payload too large (2049 bytes)."),
    )

    result = await harness.orchestrator.translate(TranslationRequest(text="Hello"))

    assert result.code == 400
    assert harness.upstream.call_count == 0
    assert builder.build_body.call_count == 1
    assert harness.breakers.states() == {}
