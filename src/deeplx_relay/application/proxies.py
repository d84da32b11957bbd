# src/deeplx_relay/application/proxies.py
"""上游代理端点的注册表。"""

from __future__ import annotations

import random

import structlog

from deeplx_relay.core.types import ProxyEndpoint

logger = structlog.get_logger(__name__)


def parse_proxy_urls(raw: str | None) -> list[ProxyEndpoint]:
    """解析逗号分隔的代理列表，丢弃空项与非 http(s) 地址。"""
    endpoints: list[ProxyEndpoint] = []
    for item in (raw or "").split(","):
        url = item.strip()
        if not url:
            continue
        if not url.startswith(("http://", "https://")):
            logger.warning("忽略非法的代理地址。", url=url)
            continue
        endpoints.append(ProxyEndpoint(url=url))
    return endpoints


class ProxyRegistry:
    """持有静态配置的代理端点，并为每次尝试随机挑选一个。"""

    def __init__(self, endpoints: list[ProxyEndpoint], *, rng: random.Random | None = None):
        self._endpoints = tuple(endpoints)
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, raw: str | None) -> "ProxyRegistry":
        return cls(parse_proxy_urls(raw))

    @property
    def endpoints(self) -> tuple[ProxyEndpoint, ...]:
        return self._endpoints

    def count(self) -> int:
        return len(self._endpoints)

    def select(self) -> ProxyEndpoint | None:
        if not self._endpoints:
            return None
        return self._rng.choice(self._endpoints)
