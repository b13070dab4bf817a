"""Message translation through an OpenAI-compatible chat API (OpenRouter)"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError
from openai.types.chat import ChatCompletionMessageParam

logger = logging.getLogger("discord_bot.translator")

FALLBACK_MODELS: list[str] = [
    "meta-llama/llama-3.3-70b-instruct:free",
    "z-ai/glm-4.5-air:free",
    "openai/gpt-oss-120b:free",
]

_THINK_RE = re.compile(r"<think>[\s\S]*?(</think>|$)")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

SYSTEM_PROMPT = (
    "You are a translation engine. Detect the language of the user's text and "
    "translate it into the requested target language. Preserve meaning, tone, "
    "emoji, mentions, URLs and Discord markdown. Reply with a single JSON object "
    'and nothing else: {"sourceLanguage": "<ISO 639-1 code>", "translation": "<text>"}. '
    "If the text is already in the target language, return it unchanged."
)


class TranslationError(Exception):
    """The translation service is unavailable or returned nothing usable."""


@dataclass(frozen=True)
class Translation:
    text: str
    source_language: str
    target_language: str


def parse_translation_reply(raw: str, target: str) -> Translation:
    """Parse the model's JSON reply; tolerates code fences and <think> blocks"""
    cleaned = _FENCE_RE.sub("", _THINK_RE.sub("", raw).strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Models occasionally ignore the format and answer with the bare translation
        if not cleaned:
            raise TranslationError("Empty translation") from None
        return Translation(text=cleaned, source_language="auto", target_language=target)

    if not isinstance(data, dict):
        # A bare JSON scalar or list (a number, a quoted string) is the translation itself
        text = data if isinstance(data, str) else cleaned
        if not text.strip():
            raise TranslationError("Empty translation")
        return Translation(text=text.strip(), source_language="auto", target_language=target)

    text = str(data.get("translation") or "").strip()
    if not text:
        raise TranslationError("Empty translation")
    source = str(data.get("sourceLanguage") or "auto").strip().lower() or "auto"
    return Translation(text=text, source_language=source, target_language=target)


class Translator:
    def __init__(
        self,
        api_key: str,
        model: str = "openrouter/free",
        base_url: str = "https://openrouter.ai/api/v1",
        *,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("OPENROUTER_API_KEY is required for translation")
        self.client = client or AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=45.0)
        self.models = [model] + [m for m in FALLBACK_MODELS if m != model]
        logger.info(f"Translator initialized: primary={model}, fallbacks={len(self.models) - 1}")

    async def translate(self, text: str, target: str, source: str | None = None) -> Translation:
        """Translate *text* into *target*. Tries each model in turn."""
        hint = f" The source language is {source}." if source else ""
        messages: list[ChatCompletionMessageParam] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Target language: {target}.{hint}\n\n{text}"},
        ]

        last_error: Exception | None = None
        for model in self.models:
            try:
                completion = await self.client.chat.completions.create(
                    model=model,
                    max_tokens=1200,
                    temperature=0.2,
                    messages=messages,
                )
            except (RateLimitError, APITimeoutError) as e:
                logger.warning(f"Translate [{model}]: {type(e).__name__}, trying next model")
                last_error = e
                continue
            except APIError as e:
                logger.error(f"Translate [{model}] failed: {e}")
                last_error = e
                continue

            if not completion.choices:
                logger.warning(f"Translate [{model}]: no choices, trying next model")
                continue
            raw = completion.choices[0].message.content or ""
            try:
                result = parse_translation_reply(raw, target)
            except TranslationError as e:
                last_error = e
                continue
            if source and result.source_language == "auto":
                result = Translation(result.text, source, target)
            return result

        raise TranslationError(f"All translation models failed: {last_error}")
