from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .errors import MissingCredential

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_SOURCE_LANG = "English"
DEFAULT_TARGET_LANG = "Simplified Chinese"
DEFAULT_TARGET_TAG = "zh-CN"

DEFAULT_GLOSSARY_NAME = "glossary.json"
DEFAULT_REPORT_NAME = "translation_report.txt"
DEFAULT_AUDIT_NAME = "hardcoded_audit.txt"

# Seconds to wait for a single translation request.
DEFAULT_TIMEOUT_SECONDS = 60.0

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")

IGNORED_DIRS = frozenset({"bin", "obj", "node_modules", "packages"})


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one synchronization run, built once and passed around."""

    root: Path
    target_tag: str = DEFAULT_TARGET_TAG
    source_lang: str = DEFAULT_SOURCE_LANG
    target_lang: str = DEFAULT_TARGET_LANG
    model: str = DEFAULT_MODEL
    glossary_path: Optional[Path] = None
    report_path: Optional[Path] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    api_key: Optional[str] = field(default=None, repr=False)
    dry_run: bool = False

    @property
    def resolved_glossary_path(self) -> Path:
        return self.glossary_path or self.root / DEFAULT_GLOSSARY_NAME

    @property
    def resolved_report_path(self) -> Path:
        return self.report_path or self.root / DEFAULT_REPORT_NAME

    def require_api_key(self) -> str:
        if not self.api_key or not self.api_key.strip():
            raise MissingCredential(
                "No API key configured. Pass --api-key or set "
                + " / ".join(API_KEY_ENV_VARS)
                + "."
            )
        return self.api_key.strip()


def resolve_api_key(
    explicit: Optional[str],
    environ: Optional[Mapping[str, str]] = None,
    names: Sequence[str] = API_KEY_ENV_VARS,
) -> Optional[str]:
    if explicit and explicit.strip():
        return explicit.strip()
    env = os.environ if environ is None else environ
    for name in names:
        value = env.get(name, "").strip()
        if value:
            return value
    return None
