"""Workspace-wide synchronization of reference .resx files with their targets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from .config import IGNORED_DIRS, SyncConfig
from .diff import diff
from .errors import MalformedDocument, NoResourceFiles, PersistenceFailure
from .glossary import Glossary, load_glossary
from .report import print_summary, write_report
from .resources import load_document, merge, save_document
from .translator import GeminiTranslator, Translator, translate_entry

RESX_SUFFIX = ".resx"

# "Strings.ja" or "Strings.zh-Hant": the stem of another culture's satellite file.
CULTURE_STEM_RE = re.compile(r"\.[a-z]{2,3}(?:-[A-Za-z0-9]{2,8})*$")


class PairState(str, Enum):
    DISCOVERED = "discovered"
    DIFFED = "diffed"
    TRANSLATING = "translating"
    MERGED = "merged"
    PERSISTED = "persisted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ResourcePair:
    reference: Path
    target: Path


@dataclass
class PairResult:
    pair: ResourcePair
    state: PairState = PairState.DISCOVERED
    candidates: int = 0
    translated: int = 0
    failed: int = 0
    error: Optional[str] = None
    note: Optional[str] = None
    failures: Dict[str, str] = field(default_factory=dict)


@dataclass
class SyncReport:
    root: Path
    target_tag: str
    results: List[PairResult] = field(default_factory=list)

    def add(self, result: PairResult) -> None:
        self.results.append(result)

    @property
    def files_processed(self) -> int:
        return len(self.results)

    @property
    def files_written(self) -> int:
        return sum(1 for result in self.results if result.state is PairState.PERSISTED)

    @property
    def keys_translated(self) -> int:
        return sum(result.translated for result in self.results)

    @property
    def keys_failed(self) -> int:
        return sum(result.failed for result in self.results)

    @property
    def has_file_errors(self) -> bool:
        return any(result.state is PairState.FAILED for result in self.results)


def target_path_for(reference: Path, target_tag: str) -> Path:
    """``Strings.resx`` -> ``Strings.<target_tag>.resx`` in the same directory."""
    return reference.with_name(f"{reference.stem}.{target_tag}{RESX_SUFFIX}")


def _is_ignored(path: Path, root: Path) -> bool:
    try:
        parts = path.relative_to(root).parts[:-1]
    except ValueError:
        parts = path.parts[:-1]
    return any(part in IGNORED_DIRS or part.startswith(".") for part in parts)


def discover_pairs(root: Path, target_tag: str) -> List[ResourcePair]:
    target_suffix = f".{target_tag}{RESX_SUFFIX}".lower()
    pairs: List[ResourcePair] = []
    for path in sorted(root.rglob(f"*{RESX_SUFFIX}")):
        if not path.is_file() or _is_ignored(path, root):
            continue
        if path.name.lower().endswith(target_suffix):
            continue
        if CULTURE_STEM_RE.search(path.stem):
            logging.debug("Skipping culture-specific resource %s", path)
            continue
        pairs.append(ResourcePair(reference=path, target=target_path_for(path, target_tag)))
    return pairs


def sync_pair(
    pair: ResourcePair,
    translator: Optional[Translator],
    glossary: Optional[Glossary] = None,
    dry_run: bool = False,
) -> PairResult:
    result = PairResult(pair=pair)
    print(f"\n📄 {pair.reference}")
    print(f"   -> {pair.target}")

    try:
        reference = load_document(pair.reference)
        target = load_document(pair.target, missing_ok=True)
    except MalformedDocument as exc:
        logging.error("Skipping malformed resource pair: %s", exc)
        result.state = PairState.FAILED
        result.error = str(exc)
        return result

    missing = diff(reference, target)
    result.state = PairState.DIFFED
    result.candidates = len(missing)

    if not missing:
        print("   ✔ Nothing to translate, skipping.")
        result.state = PairState.SKIPPED
        return result

    print(f"   🔎 {len(missing)} key(s) need translation.")
    if dry_run or translator is None:
        for key, source in missing.items():
            print(f"     [{key}] {source}")
        result.state = PairState.SKIPPED
        result.note = "dry run"
        return result

    result.state = PairState.TRANSLATING
    batch: Dict[str, str] = {}
    for key, source in tqdm(missing.items(), total=len(missing), desc=pair.reference.name, unit="key", leave=False):
        outcome = translate_entry(translator, key, source, glossary)
        if outcome.ok:
            batch[key] = outcome.text
            logging.info("[%s] %s -> %s", key, source, outcome.text)
        else:
            result.failures[key] = outcome.error or "unknown error"
            logging.warning("Translation failed for [%s] in %s: %s", key, pair.reference, outcome.error)

    result.failed = len(result.failures)
    if not batch:
        print("   ⚠️ No key translated successfully; target left untouched.")
        result.state = PairState.SKIPPED
        return result

    updated = merge(target, batch, reference)
    result.state = PairState.MERGED
    try:
        save_document(updated)
    except PersistenceFailure as exc:
        logging.error("Could not write %s: %s", pair.target, exc)
        result.state = PairState.FAILED
        result.error = str(exc)
        result.failed = result.candidates
        return result

    result.state = PairState.PERSISTED
    result.translated = len(batch)
    print(f"   ✅ Wrote {len(batch)} translation(s) to {pair.target}")
    return result


def sync_workspace(
    config: SyncConfig,
    translator: Optional[Translator],
    glossary: Optional[Glossary] = None,
    pairs: Optional[Iterable[ResourcePair]] = None,
) -> SyncReport:
    pair_list = list(pairs) if pairs is not None else discover_pairs(config.root, config.target_tag)
    if not pair_list:
        raise NoResourceFiles(f"No {RESX_SUFFIX} files found under {config.root}.")

    report = SyncReport(root=config.root, target_tag=config.target_tag)
    for pair in pair_list:
        report.add(sync_pair(pair, translator, glossary, dry_run=config.dry_run))
    return report


def run_sync(config: SyncConfig, translator: Optional[Translator] = None) -> SyncReport:
    """Full run: preconditions, glossary, every pair, then the report file.

    Run-level preconditions (credential, resource discovery, glossary) are
    checked before any resource file is touched.
    """
    if translator is None and not config.dry_run:
        translator = GeminiTranslator(
            api_key=config.require_api_key(),
            model=config.model,
            source_lang=config.source_lang,
            target_lang=config.target_lang,
            timeout=config.timeout,
        )

    pairs = discover_pairs(config.root, config.target_tag)
    if not pairs:
        raise NoResourceFiles(f"No {RESX_SUFFIX} files found under {config.root}.")
    print(f"🌐 Syncing {len(pairs)} resource file(s) under {config.root} -> {config.target_tag}")

    glossary = load_glossary(config.resolved_glossary_path)
    report = sync_workspace(config, translator, glossary, pairs=pairs)

    print_summary(report)
    if not config.dry_run:
        write_report(report, config.resolved_report_path)
    return report
