from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import __version__
from .audit import DEFAULT_EXTENSIONS, scan_tree, write_findings
from .config import (
    DEFAULT_AUDIT_NAME,
    DEFAULT_MODEL,
    DEFAULT_SOURCE_LANG,
    DEFAULT_TARGET_LANG,
    DEFAULT_TARGET_TAG,
    DEFAULT_TIMEOUT_SECONDS,
    SyncConfig,
    resolve_api_key,
)
from .errors import GlossaryError, MissingCredential, NoResourceFiles
from .sync import run_sync


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug output.")

    parser = argparse.ArgumentParser(
        prog="resx-autotranslate",
        description="Translate missing .resx entries into a target language and audit hardcoded UI strings.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", parents=[common], help="Translate missing or empty target entries.")
    sync.add_argument("root", type=Path, nargs="?", default=Path("."))
    sync.add_argument("--target-tag", default=DEFAULT_TARGET_TAG, help="Culture suffix of target files (default: zh-CN).")
    sync.add_argument("--source", default=DEFAULT_SOURCE_LANG, help="Source language name used in the prompt.")
    sync.add_argument("--target", default=DEFAULT_TARGET_LANG, help="Target language name used in the prompt.")
    sync.add_argument("--model", default=DEFAULT_MODEL)
    sync.add_argument("--api-key", default=None, help="Gemini API key (default: GEMINI_API_KEY or GOOGLE_API_KEY).")
    sync.add_argument("--glossary", type=Path, default=None, help="Glossary JSON path (default: <root>/glossary.json).")
    sync.add_argument("--report", type=Path, default=None, help="Report path (default: <root>/translation_report.txt).")
    sync.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Seconds to wait per request.")
    sync.add_argument("--dry-run", action="store_true", help="Only list the keys that need translation.")

    audit = subparsers.add_parser("audit", parents=[common], help="List UI string literals found in source code.")
    audit.add_argument("root", type=Path, nargs="?", default=Path("."))
    audit.add_argument("--output", type=Path, default=None, help="Findings file (default: <root>/hardcoded_audit.txt).")
    audit.add_argument(
        "--ext",
        action="append",
        default=[],
        help="File extension to scan (repeatable, default: .cs and .xaml).",
    )
    return parser


def build_config(args: argparse.Namespace) -> SyncConfig:
    return SyncConfig(
        root=args.root,
        target_tag=args.target_tag,
        source_lang=args.source,
        target_lang=args.target,
        model=args.model,
        glossary_path=args.glossary,
        report_path=args.report,
        timeout=args.timeout,
        api_key=resolve_api_key(args.api_key),
        dry_run=args.dry_run,
    )


def run_sync_command(args: argparse.Namespace) -> int:
    if not args.root.is_dir():
        raise SystemExit(f"Directory does not exist: {args.root}")
    config = build_config(args)
    try:
        report = run_sync(config)
    except (MissingCredential, NoResourceFiles, GlossaryError) as exc:
        raise SystemExit(f"❌ {exc}")
    return 1 if report.has_file_errors else 0


def run_audit_command(args: argparse.Namespace) -> int:
    if not args.root.is_dir():
        raise SystemExit(f"Directory does not exist: {args.root}")
    extensions = args.ext or list(DEFAULT_EXTENSIONS)
    findings = scan_tree(args.root, extensions)
    output = args.output or args.root / DEFAULT_AUDIT_NAME
    write_findings(findings, output, args.root)
    print(f"🔍 Audit complete. {len(findings)} suspected hardcoded string(s). See {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    if args.command == "sync":
        return run_sync_command(args)
    return run_audit_command(args)
