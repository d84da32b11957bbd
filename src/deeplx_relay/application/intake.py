# src/deeplx_relay/application/intake.py
"""
调用方请求的入口校验。

把原始的 JSON 对象（通常来自 HTTP 请求体或 CLI 参数）转换成不可变的
`TranslationRequest`，并从请求头中提取客户端 IP。
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from deeplx_relay.core.exceptions import ValidationError
from deeplx_relay.core.types import TranslationRequest
from deeplx_relay.domain.languages import validate_language_code

_IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_IPV6_PATTERN = re.compile(r"^([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")


def _lang_or_default(raw: Mapping[str, Any], field: str, default: str) -> str:
    value = raw.get(field)
    if value is None or value == "":
        return default
    validated = validate_language_code(value)
    if validated is None:
        raise ValidationError(f"Invalid {field}: {value!r}")
    return validated


def parse_translate_payload(
    raw: Any, max_text_length: int = 5000
) -> TranslationRequest:
    """
    校验并规范化一次翻译请求。

    - 必须是包含非空字符串 `text` 的对象；
    - 文本被截断到 `max_text_length`；
    - 语言代码经 `validate_language_code` 校验，默认分别为 "auto" 与 "en"。
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a valid JSON object")

    text = raw.get("text")
    if not isinstance(text, str):
        raise ValidationError("Text field is required and must be a string")
    if not text:
        raise ValidationError("Text field cannot be empty")

    return TranslationRequest(
        text=text[:max_text_length],
        source_lang=_lang_or_default(raw, "source_lang", "auto"),
        target_lang=_lang_or_default(raw, "target_lang", "en"),
    )


def is_valid_ip(value: str) -> bool:
    return bool(_IPV4_PATTERN.match(value) or _IPV6_PATTERN.match(value))


def extract_client_ip(headers: Mapping[str, str]) -> str | None:
    """优先取 CF-Connecting-IP，其次取 X-Forwarded-For 的第一项；仅接受语法合法的 IP。"""
    lowered = {k.lower(): v for k, v in headers.items()}

    cf_ip = (lowered.get("cf-connecting-ip") or "").strip()
    if cf_ip and is_valid_ip(cf_ip):
        return cf_ip

    forwarded = lowered.get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    if first and is_valid_ip(first):
        return first
    return None
