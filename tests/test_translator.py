from __future__ import annotations

from types import SimpleNamespace
from typing import List, Optional

import pytest

from resx_autotranslate.errors import TranslationFailure
from resx_autotranslate.glossary import Glossary
from resx_autotranslate.translator import (
    GeminiTranslator,
    clean_response,
    protect_tokens,
    translate_entry,
    unprotect_tokens,
)

from conftest import FakeTranslator


class FakeModels:
    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None, candidates=None) -> None:
        self.reply = reply
        self.error = error
        self.candidates = candidates if candidates is not None else [SimpleNamespace(finish_reason="STOP")]
        self.prompts: List[str] = []
        self.models: List[str] = []

    def generate_content(self, model, contents, config=None):
        self.models.append(model)
        self.prompts.append(contents)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply, candidates=self.candidates)


def make_translator(models: FakeModels) -> GeminiTranslator:
    return GeminiTranslator(api_key="test-key", model="test-model", client=SimpleNamespace(models=models))


class TestTokens:
    def test_placeholders_are_masked_and_restored(self) -> None:
        protected, token_map = protect_tokens("Hello {0}, you have %d new {count} items")

        assert protected == "Hello __TOK0__, you have __TOK1__ new __TOK2__ items"
        assert unprotect_tokens(protected, token_map) == "Hello {0}, you have %d new {count} items"

    def test_clean_response_strips_code_fences(self) -> None:
        assert clean_response("```text\n你好\n```") == "你好"
        assert clean_response("  你好 \n") == "你好"


class TestGeminiTranslator:
    def test_returns_translation_with_placeholders_restored(self) -> None:
        models = FakeModels(reply="你好，__TOK0__！")

        result = make_translator(models).translate("Hello, {0}!")

        assert result == "你好，{0}！"
        assert models.models == ["test-model"]
        assert "Hello, __TOK0__!" in models.prompts[0]

    def test_prompt_carries_glossary_guidance(self) -> None:
        models = FakeModels(reply="打开背包")

        make_translator(models).translate("Open Inventory", Glossary([("Inventory", "背包")]))

        assert '"Inventory" must be translated as "背包"' in models.prompts[0]
        assert "Simplified Chinese" in models.prompts[0]

    def test_lost_placeholder_is_a_failure(self) -> None:
        models = FakeModels(reply="你好")

        with pytest.raises(TranslationFailure, match=r"\{0\}"):
            make_translator(models).translate("Hello {0}")

    def test_backend_error_becomes_translation_failure(self) -> None:
        models = FakeModels(error=RuntimeError("503 overloaded"))

        with pytest.raises(TranslationFailure, match="overloaded"):
            make_translator(models).translate("Hello")

    def test_empty_reply_is_a_failure(self) -> None:
        with pytest.raises(TranslationFailure):
            make_translator(FakeModels(reply="   ")).translate("Hello")

    def test_reply_without_candidates_is_a_failure(self) -> None:
        with pytest.raises(TranslationFailure):
            make_translator(FakeModels(reply="你好", candidates=[])).translate("Hello")


class TestTranslateEntry:
    def test_success_is_glossary_enforced(self) -> None:
        translator = FakeTranslator({"Open Inventory": "打开 Inventory"})

        outcome = translate_entry(translator, "Menu", "Open Inventory", Glossary([("inventory", "背包")]))

        assert outcome.ok
        assert outcome.text == "打开 背包"
        assert outcome.error is None

    def test_failure_is_returned_not_raised(self) -> None:
        translator = FakeTranslator(fail=["Hello"])

        outcome = translate_entry(translator, "Greeting", "Hello")

        assert not outcome.ok
        assert outcome.key == "Greeting"
        assert "refused" in outcome.error

    def test_unexpected_exception_is_captured(self) -> None:
        class Exploding:
            def translate(self, text, glossary=None):
                raise KeyError("boom")

        outcome = translate_entry(Exploding(), "K", "text")

        assert not outcome.ok
        assert outcome.error.startswith("KeyError")

    def test_blank_translation_is_a_failure(self) -> None:
        outcome = translate_entry(FakeTranslator({"Hello": "  "}), "Greeting", "Hello")

        assert not outcome.ok
