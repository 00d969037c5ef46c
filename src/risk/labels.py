# src/risk/labels.py
from __future__ import annotations

from typing import Any, Optional

from .constants import ABSENT_MARKER, FACTOR_ACTIONS, FEATURE_LABELS, PIPELINE_PREFIXES, UNKNOWN_LABEL

# Longest prefix first so overlapping tags never leave a partial marker behind.
_PREFIXES = sorted(PIPELINE_PREFIXES, key=len, reverse=True)


def strip_prefix(token: str) -> str:
    for prefix in _PREFIXES:
        if token.startswith(prefix):
            return token[len(prefix):]
    return token


def translate(token: Any) -> str:
    """
    Map a model feature identifier to its display name.

    Unknown tokens pass through (prefix removed). Absent markers
    ("", None, "N/A") map to UNKNOWN_LABEL.
    """
    if token is None:
        return UNKNOWN_LABEL
    text = str(token).strip()
    if not text or text == ABSENT_MARKER:
        return UNKNOWN_LABEL
    stripped = strip_prefix(text)
    if not stripped:
        return text
    return FEATURE_LABELS.get(stripped, stripped)


def suggested_action(display_name: str) -> Optional[str]:
    return FACTOR_ACTIONS.get(display_name)
