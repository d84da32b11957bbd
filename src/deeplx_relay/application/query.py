# src/deeplx_relay/application/query.py
"""
翻译请求的编排器，是 deeplx-relay 唯一的对外业务入口。

一次 `translate` 调用的生命周期：
    校验 -> 查缓存 -> [选择端点 -> 准入控制 -> 熔断保护下调用上游 -> 解析] x 重试 -> 写缓存

无论成功与否，调用方总是得到一个统一的 `StandardResult`；每次调用都会生成一条
`RequestMetrics`，记录到进程内统计并（如已配置）异步发布到指标输出端。
"""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from deeplx_relay.application.cache import TranslationCache
from deeplx_relay.application.proxies import ProxyRegistry
from deeplx_relay.config import RetryPolicySettings
from deeplx_relay.core.exceptions import RateLimitedError, ValidationError
from deeplx_relay.core.interfaces import MetricsSink
from deeplx_relay.core.types import (
    DIRECT_API_URL,
    CacheEntry,
    QueryOptions,
    StandardResult,
    TranslationRequest,
)
from deeplx_relay.domain.languages import normalize_language_code
from deeplx_relay.domain.wire import (
    RequestBuilder,
    UpstreamTranslation,
    parse_upstream_response,
)
from deeplx_relay.infrastructure.upstream.camouflage import (
    generate_browser_fingerprint,
)
from deeplx_relay.infrastructure.upstream.transport import UpstreamTransport
from deeplx_relay.observability.performance import PerformanceTracker, RequestMetrics
from deeplx_relay.resilience.circuit_breaker import CircuitBreakerRegistry
from deeplx_relay.resilience.classifier import (
    http_status,
    is_retryable,
    sanitize_error_message,
)
from deeplx_relay.resilience.rate_limiter import LimitDimension, RateLimiter
from deeplx_relay.resilience.retry import run_with_retry

logger = structlog.get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


class QueryOrchestrator:
    """把限流、缓存、熔断、重试与上游调用组合成一次完整的翻译请求。"""

    def __init__(
        self,
        *,
        builder: RequestBuilder,
        cache: TranslationCache,
        limiter: RateLimiter,
        proxies: ProxyRegistry,
        breakers: CircuitBreakerRegistry,
        transport: UpstreamTransport,
        retry_policy: RetryPolicySettings,
        direct_url: str = DIRECT_API_URL,
        tracker: PerformanceTracker | None = None,
        metrics_sink: MetricsSink | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._builder = builder
        self._cache = cache
        self._limiter = limiter
        self._proxies = proxies
        self._breakers = breakers
        self._transport = transport
        self._retry_policy = retry_policy
        self._direct_url = direct_url
        self.tracker = tracker or PerformanceTracker()
        self._metrics_sink = metrics_sink
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    async def translate(
        self, request: TranslationRequest, options: QueryOptions | None = None
    ) -> StandardResult:
        options = options or QueryOptions()
        metrics = RequestMetrics(
            request_id=uuid.uuid4().hex,
            endpoint=options.proxy_endpoint or self._direct_url,
            started_at=self._clock(),
        )
        log = logger.bind(request_id=metrics.request_id)

        result = await self._translate(request, options, metrics, log)

        metrics.duration = self._clock() - metrics.started_at
        metrics.success = result.code == 200
        metrics.code = result.code
        self._publish_metrics(metrics)
        return result

    async def _translate(
        self,
        request: TranslationRequest,
        options: QueryOptions,
        metrics: RequestMetrics,
        log: Any,
    ) -> StandardResult:
        if not request.text:
            return StandardResult.create(400, None)

        text = request.text
        source_lang = normalize_language_code(request.source_lang or "auto")
        target_lang = normalize_language_code(request.target_lang or "en")

        try:
            self._builder.validate(text, source_lang, target_lang)
        except ValidationError as e:
            log.warning("翻译请求未通过校验。", error=e.message)
            return StandardResult.create(400, None)

        cache_key = self._cache.generate_key(text, source_lang, target_lang)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            metrics.cache_hit = True
            log.debug("命中翻译缓存。", cache_key=cache_key)
            return StandardResult.create(
                200,
                cached.data,
                id=cached.id,
                source_lang=cached.source_lang,
                target_lang=cached.target_lang,
            )

        client_id = options.client_ip or UNKNOWN_CLIENT

        async def attempt() -> UpstreamTranslation:
            # 载荷在熔断器外构造，超限只作为校验失败返回
            body = self._builder.build_body(text, source_lang, target_lang)
            endpoint = self._select_endpoint(options)
            metrics.endpoint = endpoint
            metrics.proxy_used = endpoint != self._direct_url

            decision = await self._limiter.check_combined(client_id, endpoint)
            if not decision.allowed:
                metrics.rate_limited = True
                dimension = decision.dimension or LimitDimension.CLIENT
                raise RateLimitedError(
                    decision.reason or "Rate limit exceeded",
                    dimension=dimension.value,
                )

            headers = {
                **generate_browser_fingerprint(self._rng),
                **options.custom_headers,
            }

            async def call_upstream() -> UpstreamTranslation:
                raw = await self._transport.post(endpoint, body, headers)
                return parse_upstream_response(raw, endpoint)

            return await self._breakers.get(endpoint).execute(call_upstream)

        def on_retry(attempt_no: int, error: BaseException, delay: float) -> None:
            metrics.retry_count = attempt_no + 1

        try:
            translation = await run_with_retry(
                attempt,
                self._retry_policy,
                is_retryable,
                sleep=self._sleep,
                on_retry=on_retry,
            )
        except Exception as e:
            status = http_status(e)
            log.error(
                "翻译请求失败。",
                endpoint=metrics.endpoint,
                status=status,
                error_type=type(e).__name__,
                error=sanitize_error_message(str(e)),
            )
            return StandardResult.create(status, None)

        result = StandardResult.create(
            200,
            translation.text,
            id=translation.id,
            source_lang=translation.lang or source_lang,
            target_lang=target_lang,
        )
        await self._cache.set(
            cache_key,
            CacheEntry(
                data=translation.text,
                created_at=self._clock(),
                source_lang=result.source_lang,
                target_lang=result.target_lang,
                id=result.id,
            ),
        )
        log.info(
            "翻译成功。",
            endpoint=metrics.endpoint,
            retries=metrics.retry_count,
        )
        return result

    def _select_endpoint(self, options: QueryOptions) -> str:
        if options.proxy_endpoint:
            return options.proxy_endpoint
        proxy = self._proxies.select()
        return proxy.url if proxy is not None else self._direct_url

    def _publish_metrics(self, metrics: RequestMetrics) -> None:
        self.tracker.record(metrics)
        if self._metrics_sink is None:
            return
        try:
            self._metrics_sink.record(metrics.to_dict())
        except Exception as e:
            logger.warning("指标发布失败，已忽略。", error=str(e))

    def purge_expired_memory_state(self) -> dict[str, int]:
        """定期维护：清理限流快速缓存与本地翻译缓存中的过期条目。"""
        counts = {
            "rate_limit_entries": self._limiter.purge_expired(),
            "cache_entries": self._cache.purge_expired(),
        }
        logger.info("内存状态清理完成。", **counts)
        return counts
