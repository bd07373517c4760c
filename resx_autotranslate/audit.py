"""Grep-like report of UI string literals that never made it into resources."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from .config import IGNORED_DIRS

DEFAULT_EXTENSIONS = (".cs", ".xaml")

_CS_LITERAL = r'\$?@?"((?:[^"\\\n]|\\.)*)"'
_UI_PROPERTIES = r"(?:Text|Title|Caption|Content|Header|ToolTip|ToolTipText|PlaceholderText|Watermark)"

PATTERNS: Dict[str, List[re.Pattern[str]]] = {
    ".cs": [
        re.compile(rf"\b{_UI_PROPERTIES}\s*=\s*{_CS_LITERAL}"),
        re.compile(rf"\bMessageBox\.Show\(\s*{_CS_LITERAL}"),
        re.compile(rf"\bSetToolTip\([^,]+,\s*{_CS_LITERAL}"),
    ],
    # Bindings and markup extensions start with "{" and are not literals.
    ".xaml": [
        re.compile(rf'\b{_UI_PROPERTIES}\s*=\s*"([^"{{][^"]*)"'),
    ],
}

LETTER_RE = re.compile(r"[^\W\d_]")
GENERATED_SUFFIXES = (".g.cs", ".g.i.cs")


@dataclass(frozen=True)
class Finding:
    path: Path
    line: int
    literal: str

    def format(self, root: Path) -> str:
        try:
            location = self.path.relative_to(root)
        except ValueError:
            location = self.path
        return f"{location}:{self.line}: {self.literal}"


def looks_like_text(literal: str) -> bool:
    stripped = literal.strip()
    return len(stripped) > 1 and bool(LETTER_RE.search(stripped))


def scan_text(content: str, suffix: str, path: Path) -> List[Finding]:
    patterns = PATTERNS.get(suffix.lower(), [])
    findings: List[Finding] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith("//"):
            continue
        for pattern in patterns:
            for match in pattern.finditer(line):
                literal = match.group(1)
                if looks_like_text(literal):
                    findings.append(Finding(path=path, line=lineno, literal=literal.strip()))
    return findings


def scan_file(path: Path) -> List[Finding]:
    try:
        content = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        logging.warning("Could not read %s: %s", path, exc)
        return []
    return scan_text(content, path.suffix, path)


def normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def iter_source_files(root: Path, extensions: Sequence[str]) -> Iterable[Path]:
    wanted = {normalize_extension(ext) for ext in extensions}
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in wanted:
            continue
        if path.name.lower().endswith(GENERATED_SUFFIXES):
            continue
        parts = path.relative_to(root).parts[:-1]
        if any(part in IGNORED_DIRS or part.startswith(".") for part in parts):
            continue
        yield path


def scan_tree(root: Path, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> List[Finding]:
    findings: List[Finding] = []
    for path in iter_source_files(root, extensions):
        findings.extend(scan_file(path))
    return findings


def write_findings(findings: Sequence[Finding], output: Path, root: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("".join(f"{finding.format(root)}\n" for finding in findings), encoding="utf-8")
