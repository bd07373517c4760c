"""Shared fixtures: tiny .resx writer and an in-memory translator."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pytest

from resx_autotranslate.errors import TranslationFailure
from resx_autotranslate.glossary import Glossary

RESX_HEAD = """<?xml version="1.0" encoding="utf-8"?>
<root>
  <!-- Microsoft ResX Schema -->
  <xsd:schema id="root" xmlns="" xmlns:xsd="http://www.w3.org/2001/XMLSchema" xmlns:msdata="urn:schemas-microsoft-com:xml-msdata">
    <xsd:element name="root" msdata:IsDataSet="true" />
  </xsd:schema>
  <resheader name="resmimetype">
    <value>text/microsoft-resx</value>
  </resheader>
"""

Entry = Union[Tuple[str, str], Tuple[str, str, bool]]


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def resx_text(entries: Iterable[Entry]) -> str:
    parts = [RESX_HEAD]
    for entry in entries:
        key, value = entry[0], entry[1]
        preserve = entry[2] if len(entry) > 2 else True
        space = ' xml:space="preserve"' if preserve else ""
        parts.append(f'  <data name="{key}"{space}>\n    <value>{_escape(value)}</value>\n  </data>\n')
    parts.append("</root>\n")
    return "".join(parts)


def write_resx(path: Path, entries: Iterable[Entry], newline: str = "\n", bom: bytes = b"") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = resx_text(entries).replace("\n", newline)
    path.write_bytes(bom + text.encode("utf-8"))
    return path


class FakeTranslator:
    """Looks texts up in a table; everything else becomes ``ZH:<text>``."""

    def __init__(self, table: Optional[Dict[str, str]] = None, fail: Sequence[str] = ()) -> None:
        self.table = dict(table or {})
        self.fail = set(fail)
        self.calls: List[str] = []
        self.glossaries: List[Optional[Glossary]] = []

    def translate(self, text: str, glossary: Optional[Glossary] = None) -> str:
        self.calls.append(text)
        self.glossaries.append(glossary)
        if text in self.fail:
            raise TranslationFailure(f"backend refused {text!r}")
        return self.table.get(text, f"ZH:{text}")


@pytest.fixture
def translator() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "solution"
    root.mkdir()
    return root
