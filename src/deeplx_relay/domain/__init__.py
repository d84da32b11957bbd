# src/deeplx_relay/domain/__init__.py
"""领域层：上游线上报文与语言代码规则。"""

from .languages import normalize_language_code, validate_language_code
from .wire import (
    RequestBuilder,
    UpstreamPayload,
    UpstreamTranslation,
    parse_upstream_response,
)

__all__ = [
    "RequestBuilder",
    "UpstreamPayload",
    "UpstreamTranslation",
    "normalize_language_code",
    "parse_upstream_response",
    "validate_language_code",
]
