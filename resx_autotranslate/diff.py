from __future__ import annotations

from typing import Dict

from .resources import ResourceDocument


def diff(reference: ResourceDocument, target: ResourceDocument) -> Dict[str, str]:
    """Keys whose reference text is non-blank but blank or absent in the target.

    Values are the trimmed reference texts, in reference document order.
    """
    existing = target.as_dict()
    missing: Dict[str, str] = {}
    for entry in reference.entries():
        if not entry.is_text:
            continue
        source = entry.text.strip()
        if not source:
            continue
        if not existing.get(entry.key, "").strip():
            missing[entry.key] = source
    return missing
