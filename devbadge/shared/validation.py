"""Input normalization for guild configuration values"""

from __future__ import annotations

import re
from collections.abc import Iterable

_CHANNEL_ID_RE = re.compile(r"^\d{1,25}$")
_LANGUAGE_RE = re.compile(r"^([a-zA-Z]{2,3})(?:-([a-zA-Z]{2,4}))?$")
_STREAMER_RE = re.compile(r"^\w{3,25}$")


class ConfigValidationError(ValueError):
    """Raised when a configuration value is malformed. Nothing is written."""


def normalize_channel_id(value: object) -> str | None:
    """Return a channel id as a string, or None for blank input"""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not _CHANNEL_ID_RE.match(text):
        raise ConfigValidationError(f"Invalid channel id: {value!r}")
    return text


def normalize_channel_ids(values: Iterable[object]) -> list[str]:
    """Deduplicate channel ids (first occurrence wins) and drop blanks"""
    result: list[str] = []
    for value in values:
        channel_id = normalize_channel_id(value)
        if channel_id and channel_id not in result:
            result.append(channel_id)
    return result


def normalize_language_code(value: object) -> str:
    """Normalize a language code to ``xx`` or ``xx-YY`` form (``zh-CN``)"""
    text = str(value or "").strip()
    match = _LANGUAGE_RE.match(text)
    if not match:
        raise ConfigValidationError(
            f"Invalid language code: {text!r}. Use codes like en, es, de, fr, ja, zh-CN"
        )
    primary, region = match.group(1).lower(), match.group(2)
    if not region:
        return primary
    region = region.upper() if len(region) == 2 else region.title()
    return f"{primary}-{region}"


def normalize_language_codes(values: Iterable[object]) -> list[str]:
    """Validate and deduplicate language codes, preserving order. Must not end up empty."""
    result: list[str] = []
    for value in values:
        if value is None or not str(value).strip():
            continue
        code = normalize_language_code(value)
        if code not in result:
            result.append(code)
    if not result:
        raise ConfigValidationError("At least one target language is required")
    return result


def normalize_streamer(value: object) -> str:
    """Twitch logins are case-insensitive; store them lowercase"""
    text = str(value or "").strip().lower()
    if not _STREAMER_RE.match(text):
        raise ConfigValidationError(
            f"Invalid Twitch username: {value!r} (3-25 letters, digits or underscores)"
        )
    return text


def normalize_streamers(values: Iterable[object]) -> list[str]:
    result: list[str] = []
    for value in values:
        if value is None or not str(value).strip():
            continue
        name = normalize_streamer(value)
        if name not in result:
            result.append(name)
    return result
