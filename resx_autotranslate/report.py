"""Human-readable summary of a synchronization run."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .sync import PairResult, SyncReport


def _display_path(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def format_pair_line(result: "PairResult", root: Path) -> str:
    line = (
        f"{result.state.value:<10} translated={result.translated:<4} "
        f"failed={result.failed:<4} {_display_path(result.pair.reference, root)}"
    )
    if result.note:
        line += f"  [{result.note}]"
    if result.error:
        line += f"  ({result.error})"
    return line


def format_report(report: "SyncReport", generated_at: Optional[datetime] = None) -> str:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    lines: List[str] = [
        "Resource synchronization report",
        f"Generated: {stamp}",
        f"Root: {report.root}",
        f"Target language: {report.target_tag}",
        "",
    ]
    for result in report.results:
        lines.append(format_pair_line(result, report.root))
        for key, reason in result.failures.items():
            lines.append(f"    ! {key}: {reason}")
    lines.extend(
        [
            "",
            f"Files processed: {report.files_processed}",
            f"Files written:   {report.files_written}",
            f"Keys translated: {report.keys_translated}",
            f"Keys failed:     {report.keys_failed}",
        ]
    )
    return "\n".join(lines) + "\n"


def write_report(report: "SyncReport", path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_report(report), encoding="utf-8")
    except OSError as exc:
        logging.error("Could not write report %s: %s", path, exc)
        return
    print(f"📝 Report written to {path}")


def print_summary(report: "SyncReport") -> None:
    print(
        f"\n✅ Done. {report.files_processed} file(s) processed, "
        f"{report.keys_translated} key(s) translated, {report.keys_failed} failed."
    )
