"""Translation backend powered by Gemini, plus the per-key translation step."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL, DEFAULT_SOURCE_LANG, DEFAULT_TARGET_LANG, DEFAULT_TIMEOUT_SECONDS
from .errors import TranslationFailure
from .glossary import Glossary, enforce

# .NET composite format items, printf-style markers and escaped control chars.
PLACEHOLDER_RE = re.compile(r"(\{[^{}\s]*\}|%\d+\$[sdif]|%[sdif]|\\n|\\t|\\r)")


@dataclass(frozen=True)
class PromptConfig:
    """Holds the prompt template for a single translation request."""

    template: str

    def build(self, text: str, source_lang: str, target_lang: str, glossary: Optional[Glossary]) -> str:
        lines = glossary.as_prompt_lines() if glossary else []
        return self.template.format(
            source_lang=source_lang,
            target_lang=target_lang,
            glossary="\n".join(f"- {line}" for line in lines) if lines else "- (none)",
            text=text,
        )


DEFAULT_PROMPT_CONFIG = PromptConfig(
    template=(
        "You are a translation engine for software UI and game text. "
        "Translate the text below from {source_lang} to {target_lang}.\n"
        "Rules:\n"
        "1. Output ONLY the translated text. No explanations, quotes or notes.\n"
        "2. Keep every __TOK#__ marker unchanged; it stands for a placeholder.\n"
        "3. Keep line breaks and surrounding punctuation as in the source.\n"
        "Terminology:\n"
        "{glossary}\n"
        "Text:\n"
        "{text}"
    ),
)


class Translator(Protocol):
    def translate(self, text: str, glossary: Optional[Glossary] = None) -> str:
        ...


def protect_tokens(text: str) -> Tuple[str, Dict[str, str]]:
    token_map: Dict[str, str] = {}
    idx = 0

    def repl(match: re.Match[str]) -> str:
        nonlocal idx
        key = f"__TOK{idx}__"
        token_map[key] = match.group(0)
        idx += 1
        return key

    return PLACEHOLDER_RE.sub(repl, text), token_map


def unprotect_tokens(text: str, token_map: Dict[str, str]) -> str:
    for key, value in token_map.items():
        text = text.replace(key, value)
    return text


def clean_response(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _normalized_finish_reason(value: object) -> str:
    if value is None:
        return ""
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name.lower()
    raw_value = getattr(value, "value", None)
    if isinstance(raw_value, str):
        return raw_value.lower()
    return str(value).lower()


def response_text(response: Any) -> str:
    # The google-genai SDK returns a GenerateContentResponse with .text and .candidates.
    candidates = getattr(response, "candidates", None)
    if candidates is not None and not candidates:
        raise TranslationFailure("Response without candidates.")

    if candidates:
        finish_reason = getattr(candidates[0], "finish_reason", None)
        normalized = _normalized_finish_reason(finish_reason)
        if normalized and not ("stop" in normalized or "unspecified" in normalized):
            logging.warning("Unexpected finish_reason (%s) but text was returned; continuing.", finish_reason)

    text = getattr(response, "text", None)
    if not text or not text.strip():
        raise TranslationFailure("Empty response or no usable text returned.")
    return text


class GeminiTranslator:
    """Translates one string per request through the google-genai SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        source_lang: str = DEFAULT_SOURCE_LANG,
        target_lang: str = DEFAULT_TARGET_LANG,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        prompt_config: PromptConfig = DEFAULT_PROMPT_CONFIG,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.prompt_config = prompt_config
        self.client = client if client is not None else setup_gemini(api_key, timeout)

    def translate(self, text: str, glossary: Optional[Glossary] = None) -> str:
        protected, token_map = protect_tokens(text)
        prompt = self.prompt_config.build(protected, self.source_lang, self.target_lang, glossary)

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(temperature=0.2),
            )
        except Exception as exc:
            raise TranslationFailure(f"Backend request failed: {exc}") from exc

        translated = clean_response(response_text(response))
        lost = [key for key in token_map if key not in translated]
        if lost:
            missing = ", ".join(token_map[key] for key in lost)
            raise TranslationFailure(f"Placeholder(s) lost in translation: {missing}")
        return unprotect_tokens(translated, token_map)


def setup_gemini(api_key: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> genai.Client:
    """Create a Google GenAI client with a bounded request timeout."""
    return genai.Client(
        api_key=api_key,
        http_options=types.HttpOptions(timeout=int(timeout * 1000)),
    )


@dataclass(frozen=True)
class TranslationOutcome:
    key: str
    source: str
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.text is not None


def translate_entry(
    translator: Translator,
    key: str,
    source: str,
    glossary: Optional[Glossary] = None,
) -> TranslationOutcome:
    """Translate one resource value and enforce terminology on the result.

    Backend failures are returned as a failed outcome instead of raised.
    """
    try:
        translated = translator.translate(source, glossary)
    except TranslationFailure as exc:
        return TranslationOutcome(key=key, source=source, error=str(exc))
    except Exception as exc:
        return TranslationOutcome(key=key, source=source, error=f"{type(exc).__name__}: {exc}")

    translated = translated.strip() if translated else ""
    if not translated:
        return TranslationOutcome(key=key, source=source, error="Empty translation.")
    return TranslationOutcome(key=key, source=source, text=enforce(translated, glossary))
