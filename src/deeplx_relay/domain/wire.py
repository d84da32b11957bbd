# src/deeplx_relay/domain/wire.py
"""
上游 JSON-RPC 报文的构造与解析。

上游会拒绝“不像浏览器”的请求，因此以下两个格式细节必须逐字节复现：

1. 时间戳：设 k 为文本中字母 "i" 的个数。k == 0 时直接使用当前毫秒时间戳；
   否则令 m = k + 1，时间戳为 `raw - raw % m + m`。
2. method 字段的分隔符：若 `(id + 5) % 29 == 0` 或 `(id + 3) % 13 == 0`，
   渲染为 `"method" : "`，否则渲染为 `"method": "`。
"""

from __future__ import annotations

import json
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from deeplx_relay.config import PayloadSettings
from deeplx_relay.core.exceptions import UpstreamProtocolError, ValidationError
from deeplx_relay.domain.languages import normalize_language_code

logger = structlog.get_logger(__name__)

JSONRPC_VERSION = "2.0"
METHOD_NAME = "LMT_handle_texts"
SPLITTING_MODE = "newlines"
REQUEST_ALTERNATIVES = 0

COMPACT_METHOD = '"method":"'
SPACED_METHOD = '"method" : "'
DEFAULT_METHOD = '"method": "'

KNOWN_UPSTREAM_ERRORS: dict[int, str] = {
    1156049: (
        "Invalid request format detected. This may be caused by: "
        "1) Incorrect JSON-RPC structure, "
        "2) Invalid request ID format, "
        "3) Malformed timestamp, or "
        "4) Unsupported language codes. "
        "Please verify your request parameters and try again."
    ),
    1042912: "Too many requests. Please try again later.",
    1042513: "Request quota exceeded. Please try again later.",
    1042003: "Invalid authentication. Please check your API configuration.",
}


@dataclass(frozen=True)
class UpstreamPayload:
    """线上报文的结构化形态，仅用于序列化，从不持久化。"""

    id: int
    texts: list[dict[str, Any]]
    timestamp: int
    source_lang_user_selected: str
    target_lang: str
    jsonrpc: str = JSONRPC_VERSION
    method: str = METHOD_NAME
    splitting: str = SPLITTING_MODE

    def to_wire_dict(self) -> dict[str, Any]:
        # 键顺序即线上顺序
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "id": self.id,
            "params": {
                "texts": self.texts,
                "timestamp": self.timestamp,
                "splitting": self.splitting,
                "lang": {
                    "source_lang_user_selected": self.source_lang_user_selected,
                    "target_lang": self.target_lang,
                },
            },
        }

    @property
    def uses_spaced_method(self) -> bool:
        return (self.id + 5) % 29 == 0 or (self.id + 3) % 13 == 0


@dataclass(frozen=True)
class UpstreamTranslation:
    text: str
    lang: str | None = None
    id: int | None = None


def count_letter_i(text: str) -> int:
    return text.count("i")


def compute_timestamp(raw_ms: int, letter_count: int) -> int:
    if letter_count <= 0:
        return raw_ms
    modulus = letter_count + 1
    return raw_ms - raw_ms % modulus + modulus


def compute_request_id(wall_ms: int, random_int: int) -> int:
    request_id = wall_ms % 100_000_000 + random_int % 1_000_000
    if request_id < 10_000_000:
        request_id += 10_000_000
    return request_id


class RequestBuilder:
    """构造、校验并渲染上游请求体。"""

    def __init__(
        self,
        settings: PayloadSettings,
        *,
        clock_ms: Callable[[], int] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._rng = rng or random.Random()

    def validate_text(self, text: str | None) -> str:
        if not text:
            raise ValidationError("Invalid request parameters: text cannot be empty")
        if len(text) > self._settings.max_text_length:
            raise ValidationError(
                f"Text too long. Maximum length is {self._settings.max_text_length} "
                "characters to prevent payload size errors."
            )
        return text

    def build(
        self, text: str | None, source_lang: str | None, target_lang: str | None
    ) -> UpstreamPayload:
        checked = self.validate_text(text)
        now_ms = self._clock_ms()
        return UpstreamPayload(
            id=compute_request_id(now_ms, self._rng.randrange(1_000_000)),
            texts=[{"text": checked, "requestAlternatives": REQUEST_ALTERNATIVES}],
            timestamp=compute_timestamp(now_ms, count_letter_i(checked)),
            source_lang_user_selected=normalize_language_code(source_lang or "auto"),
            target_lang=normalize_language_code(target_lang or "en"),
        )

    def render(self, payload: UpstreamPayload) -> str:
        """序列化为紧凑 JSON 并应用 method 分隔符格式，同时校验字节大小。"""
        body = json.dumps(
            payload.to_wire_dict(), separators=(",", ":"), ensure_ascii=False
        )
        replacement = SPACED_METHOD if payload.uses_spaced_method else DEFAULT_METHOD
        body = body.replace(COMPACT_METHOD, replacement, 1)

        size = len(body.encode("utf-8"))
        if size > self._settings.max_request_size:
            raise ValidationError(
                f"Request payload too large ({size} bytes). Maximum allowed is "
                f"{self._settings.max_request_size} bytes. Please reduce text length."
            )
        return body

    def build_body(
        self, text: str | None, source_lang: str | None, target_lang: str | None
    ) -> str:
        return self.render(self.build(text, source_lang, target_lang))

    def validate(
        self, text: str | None, source_lang: str | None, target_lang: str | None
    ) -> None:
        """在进入重试循环前做一次完整的预检（文本与最终载荷大小）。"""
        self.build_body(text, source_lang, target_lang)


def parse_upstream_response(raw: str, endpoint: str = "") -> UpstreamTranslation:
    """解析上游应答；错误结构与无法解析的内容都会抛出 `UpstreamProtocolError`。"""
    try:
        result = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise UpstreamProtocolError(
            f"Failed to parse JSON response from {endpoint}: {e}", upstream_code=500
        ) from e

    if not isinstance(result, dict):
        raise UpstreamProtocolError(
            "Invalid response structure from upstream", upstream_code=500
        )

    error = result.get("error")
    if error:
        code = error.get("code") if isinstance(error, dict) else None
        original = (
            error.get("message") if isinstance(error, dict) else None
        ) or "Unknown DeepL API error"
        known = KNOWN_UPSTREAM_ERRORS.get(code) if isinstance(code, int) else None
        message = known or f"DeepL API error: {original} (Code: {code})"
        logger.warning("上游返回 JSON-RPC 错误。", upstream_code=code, error=original)
        raise UpstreamProtocolError(
            message,
            upstream_code=code if isinstance(code, int) else None,
            original_message=original,
        )

    body = result.get("result")
    texts = body.get("texts") if isinstance(body, dict) else None
    if not texts or not isinstance(texts, list) or not isinstance(texts[0], dict):
        raise UpstreamProtocolError(
            "Invalid response structure: missing translation texts", upstream_code=500
        )

    text = texts[0].get("text")
    if not isinstance(text, str):
        raise UpstreamProtocolError(
            "Invalid response structure: translation text is not a string",
            upstream_code=500,
        )

    lang = body.get("lang")
    upstream_id = result.get("id")
    return UpstreamTranslation(
        text=text,
        lang=lang if isinstance(lang, str) and lang else None,
        id=upstream_id
        if isinstance(upstream_id, int) and not isinstance(upstream_id, bool)
        else None,
    )
