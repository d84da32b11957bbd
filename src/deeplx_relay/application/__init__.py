# src/deeplx_relay/application/__init__.py
"""应用层：翻译编排、两级缓存、代理注册表与请求入口校验。"""

from .cache import TranslationCache, generate_key
from .intake import extract_client_ip, parse_translate_payload
from .proxies import ProxyRegistry, parse_proxy_urls
from .query import QueryOrchestrator

__all__ = [
    "ProxyRegistry",
    "QueryOrchestrator",
    "TranslationCache",
    "extract_client_ip",
    "generate_key",
    "parse_proxy_urls",
    "parse_translate_payload",
]
