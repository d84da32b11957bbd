# src/deeplx_relay/domain/languages.py
"""语言代码的规范化与校验。"""

from __future__ import annotations

import re

AUTO = "auto"

# 常见语言名称 -> 上游支持的语言代码
LANGUAGE_NAME_MAP: dict[str, str] = {
    "chinese": "ZH",
    "english": "EN",
    "spanish": "ES",
    "french": "FR",
    "german": "DE",
    "italian": "IT",
    "japanese": "JA",
    "portuguese": "PT",
    "russian": "RU",
    "dutch": "NL",
    "polish": "PL",
    "swedish": "SV",
    "danish": "DA",
    "norwegian": "NB",
    "finnish": "FI",
    "czech": "CS",
    "slovak": "SK",
    "slovenian": "SL",
    "estonian": "ET",
    "latvian": "LV",
    "lithuanian": "LT",
    "hungarian": "HU",
    "romanian": "RO",
    "bulgarian": "BG",
    "greek": "EL",
    "turkish": "TR",
    "ukrainian": "UK",
    "korean": "KO",
    "indonesian": "ID",
}

_LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z0-9-]+$")


def normalize_language_code(code: str | None) -> str:
    """
    将语言标签规范化为上游可接受的形式。

    空值或 "auto"（不区分大小写）返回 "auto"；已知语言名称映射为语言代码；
    其余一律转为大写。
    """
    if not code or code.lower() == AUTO:
        return AUTO
    normalized = code.lower()
    return LANGUAGE_NAME_MAP.get(normalized, normalized.upper())


def validate_language_code(code: str | None) -> str | None:
    """校验调用方提交的语言代码：去空白、转小写，2-5 个 `[a-z0-9-]` 字符，否则返回 None。"""
    if not isinstance(code, str):
        return None
    cleaned = code.strip().lower()
    if not 2 <= len(cleaned) <= 5:
        return None
    if not _LANGUAGE_CODE_PATTERN.match(cleaned):
        return None
    return cleaned
