# src/deeplx_relay/di/container.py
"""
应用依赖注入 (DI) 容器。

本模块使用 `dependency-injector` 库来定义和装配 deeplx-relay 的所有组件：
配置、持久化存储、限流器、缓存、熔断器注册表、上游传输层与翻译编排器。
所有组件都是进程级单例，以便限流快速缓存与熔断状态在请求之间共享。
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog
from dependency_injector import containers, providers

from deeplx_relay.application.cache import TranslationCache
from deeplx_relay.application.proxies import ProxyRegistry
from deeplx_relay.application.query import QueryOrchestrator
from deeplx_relay.config import RelaySettings
from deeplx_relay.core.interfaces import KeyValueStore, MetricsSink
from deeplx_relay.domain.wire import RequestBuilder
from deeplx_relay.infrastructure.background import BackgroundTasks
from deeplx_relay.infrastructure.kv.memory import MemoryKeyValueStore
from deeplx_relay.infrastructure.redis._client import create_redis_client
from deeplx_relay.infrastructure.redis.store import RedisKeyValueStore
from deeplx_relay.infrastructure.redis.streams import RedisMetricsSink
from deeplx_relay.infrastructure.upstream.transport import UpstreamTransport
from deeplx_relay.observability.performance import PerformanceTracker
from deeplx_relay.resilience.circuit_breaker import CircuitBreakerRegistry
from deeplx_relay.resilience.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


def _create_store(
    config: RelaySettings, client: aioredis.Redis | None
) -> KeyValueStore:
    """配置了 Redis 时使用 Redis，否则退回到进程内存储。"""
    if client is None:
        logger.info("未配置 Redis，使用内存键值存储。")
        return MemoryKeyValueStore()
    return RedisKeyValueStore(client, key_prefix=config.redis.key_prefix)


def _create_metrics_sink(
    config: RelaySettings,
    client: aioredis.Redis | None,
    background: BackgroundTasks,
) -> MetricsSink | None:
    if not config.metrics.enabled:
        return None
    if client is None:
        logger.warning("已启用指标发布但未配置 Redis，指标只保留在进程内。")
        return None
    return RedisMetricsSink(
        client, background, stream_name=config.metrics.stream_name
    )


def _create_rate_limiter(
    config: RelaySettings,
    store: KeyValueStore,
    background: BackgroundTasks,
    proxies: ProxyRegistry,
) -> RateLimiter:
    return RateLimiter(
        store,
        config.rate_limit,
        background,
        proxy_count=proxies.count(),
        direct_url=config.upstream.api_url,
    )


class AppContainer(containers.DeclarativeContainer):
    """
    deeplx-relay 的核心 DI 容器。
    """

    # ==================================================================
    # 核心提供者 (Core Providers)
    # ==================================================================

    config = providers.Singleton(RelaySettings)

    background = providers.Singleton(BackgroundTasks)

    # ==================================================================
    # 可选基础设施 (Optional Infrastructure)
    # ==================================================================

    redis_client = providers.Singleton(create_redis_client, config=config)

    kv_store = providers.Singleton(_create_store, config=config, client=redis_client)

    metrics_sink = providers.Singleton(
        _create_metrics_sink,
        config=config,
        client=redis_client,
        background=background,
    )

    transport = providers.Singleton(
        UpstreamTransport,
        timeout=config.provided.upstream.request_timeout,
    )

    # ==================================================================
    # 弹性组件 (Resilience)
    # ==================================================================

    proxies = providers.Singleton(
        ProxyRegistry.from_config,
        raw=config.provided.upstream.proxy_urls,
    )

    rate_limiter = providers.Singleton(
        _create_rate_limiter,
        config=config,
        store=kv_store,
        background=background,
        proxies=proxies,
    )

    breakers = providers.Singleton(
        CircuitBreakerRegistry,
        settings=config.provided.circuit_breaker,
    )

    # ==================================================================
    # 应用服务 (Application Services)
    # ==================================================================

    builder = providers.Singleton(RequestBuilder, settings=config.provided.payload)

    cache = providers.Singleton(
        TranslationCache,
        store=kv_store,
        settings=config.provided.cache,
    )

    tracker = providers.Singleton(
        PerformanceTracker,
        history_size=config.provided.metrics.history_size,
    )

    orchestrator = providers.Singleton(
        QueryOrchestrator,
        builder=builder,
        cache=cache,
        limiter=rate_limiter,
        proxies=proxies,
        breakers=breakers,
        transport=transport,
        retry_policy=config.provided.retry_policy,
        direct_url=config.provided.upstream.api_url,
        tracker=tracker,
        metrics_sink=metrics_sink,
    )
