"""Fixed terminology enforced on every translated string.

The glossary is a JSON object stored next to the resources. Its order matters:
rules are applied one after the other, once each, so a later rule sees the
output of the earlier ones.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import GlossaryError

# Seed written on first run. Longer phrases come first so they win over the
# shorter terms they contain.
DEFAULT_GLOSSARY: Dict[str, str] = {
    "Experience Points": "经验值",
    "Hit Points": "生命值",
    "Mana Points": "法力值",
    "Skill Tree": "技能树",
    "Quest Log": "任务日志",
    "Inventory": "背包",
    "Save Slot": "存档位",
    "Settings": "设置",
}


class Glossary:
    """Ordered, read-only mapping of source term -> canonical translation."""

    def __init__(self, terms: Optional[Sequence[Tuple[str, str]]] = None) -> None:
        self._terms: Tuple[Tuple[str, str], ...] = tuple(terms or ())
        self._patterns: List[Tuple[re.Pattern[str], str]] = [
            (re.compile(re.escape(term), re.IGNORECASE), canonical)
            for term, canonical in self._terms
            if term
        ]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "Glossary":
        return cls(list(mapping.items()))

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def __bool__(self) -> bool:
        return bool(self._terms)

    def as_prompt_lines(self) -> List[str]:
        return [f'"{term}" must be translated as "{canonical}"' for term, canonical in self._terms if term]

    def enforce(self, text: str) -> str:
        for pattern, canonical in self._patterns:
            # A callable replacement keeps backslashes in the canonical term literal.
            text = pattern.sub(lambda _match, value=canonical: value, text)
        return text


def enforce(text: str, glossary: Optional[Glossary]) -> str:
    """Apply every glossary rule once, in order. Never raises."""
    if not glossary or not text:
        return text
    return glossary.enforce(text)


def write_glossary(path: Path, mapping: Mapping[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(dict(mapping), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_glossary(path: Path, default: Mapping[str, str] = DEFAULT_GLOSSARY) -> Glossary:
    """Load the persisted glossary, writing ``default`` first if it is missing."""
    path = Path(path)
    if not path.exists():
        write_glossary(path, default)
        print(f"📘 Glossary not found; wrote default terms to {path}")
        return Glossary.from_mapping(default)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise GlossaryError(f"Unable to read glossary {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise GlossaryError(f"Glossary {path} must be a JSON object of term -> translation.")
    for term, canonical in data.items():
        if not isinstance(canonical, str):
            raise GlossaryError(f"Glossary {path}: value for {term!r} is not a string.")

    glossary = Glossary.from_mapping(data)
    logging.info("Loaded %s glossary term(s) from %s", len(glossary), path)
    return glossary
