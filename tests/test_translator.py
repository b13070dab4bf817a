from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from devbadge.bot.core.translator import (
    FALLBACK_MODELS,
    TranslationError,
    Translator,
    parse_translation_reply,
)


class _FakeCompletions:
    def __init__(self, replies: dict[str, str]) -> None:
        self.replies = replies
        self.models: list[str] = []

    async def create(self, *, model: str, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        self.models.append(model)
        content = self.replies.get(model, "")
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _make_translator(replies: dict[str, str]) -> tuple[Translator, _FakeCompletions]:
    completions = _FakeCompletions(replies)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return Translator("key", model="primary/model", client=client), completions  # type: ignore[arg-type]


def test_parse_json_reply() -> None:
    result = parse_translation_reply('{"sourceLanguage": "ES", "translation": "Hello"}', "en")
    assert (result.text, result.source_language, result.target_language) == ("Hello", "es", "en")


def test_parse_strips_fences_and_think_blocks() -> None:
    raw = '<think>the user wants french</think>\n```json\n{"sourceLanguage": "en", "translation": "Bonjour"}\n```'
    result = parse_translation_reply(raw, "fr")
    assert result.text == "Bonjour"
    assert result.source_language == "en"


def test_parse_bare_text_falls_back_to_auto_source() -> None:
    result = parse_translation_reply("Hallo Welt", "de")
    assert result.text == "Hallo Welt"
    assert result.source_language == "auto"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42", "42"), ('"Bonjour"', "Bonjour"), ('["a", "b"]', '["a", "b"]')],
)
def test_parse_json_that_is_not_an_object_is_the_translation(raw: str, expected: str) -> None:
    result = parse_translation_reply(raw, "fr")
    assert result.text == expected
    assert result.source_language == "auto"


def test_parse_empty_reply_is_an_error() -> None:
    with pytest.raises(TranslationError):
        parse_translation_reply("  ", "en")
    with pytest.raises(TranslationError):
        parse_translation_reply('{"sourceLanguage": "en", "translation": ""}', "en")


def test_translator_falls_back_to_next_model() -> None:
    translator, completions = _make_translator(
        {FALLBACK_MODELS[0]: '{"sourceLanguage": "ja", "translation": "Good morning"}'}
    )

    result = asyncio.run(translator.translate("おはよう", "en"))
    assert result.text == "Good morning"
    assert completions.models == ["primary/model", FALLBACK_MODELS[0]]


def test_translator_uses_given_source_when_model_omits_it() -> None:
    translator, _ = _make_translator({"primary/model": "Buenos días"})

    result = asyncio.run(translator.translate("Good morning", "es", source="en"))
    assert result.source_language == "en"


def test_translator_raises_when_every_model_fails() -> None:
    translator, completions = _make_translator({})

    with pytest.raises(TranslationError):
        asyncio.run(translator.translate("hello", "fr"))
    assert len(completions.models) == len(FALLBACK_MODELS) + 1


def test_translator_requires_api_key() -> None:
    with pytest.raises(ValueError):
        Translator("  ")
