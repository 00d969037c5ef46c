# src/risk/fields.py
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

from .constants import (
    ABSENT_MARKER,
    DIAGNOSIS_FIELDS,
    DIAGNOSIS_KEY,
    FIELD_ALIASES,
    NUMERIC_FIELDS,
)


@dataclass(frozen=True)
class CanonicalRecord:
    client_id: str
    probability: float
    has_probability: bool
    risk_level: str
    primary_risk_factor: str
    primary_retention_factor: str
    suggested_action: str


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ABSENT_MARKER


def default_for(field: str):
    return 0.0 if field in NUMERIC_FIELDS else ""


def safe_number(value: Any, fallback: float = 0.0) -> float:
    # Non-numeric / NaN / inf / out-of-range collapse to the fallback. Booleans are not numbers here.
    if value is None or isinstance(value, bool):
        return fallback
    if not isinstance(value, (int, float, str, Decimal, np.number)):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        n = float(pd.to_numeric(value, errors="coerce"))
    except (TypeError, ValueError, ArithmeticError):
        return fallback
    if not math.isfinite(n):
        return fallback
    return n


def resolve(record: Optional[Mapping[str, Any]], field: str, default=None):
    """
    Return the value of the first alias of `field` present in `record`.

    Missing, None and "N/A" values are skipped. Falls back to `default`,
    or to the per-field default (0.0 numeric / "" text) when none is given.
    """
    fallback = default_for(field) if default is None else default
    if not record:
        return fallback
    for key in FIELD_ALIASES.get(field, [field]):
        if key in record and not _is_absent(record[key]):
            return record[key]
    return fallback


def resolve_number(record: Optional[Mapping[str, Any]], field: str, fallback: float = 0.0) -> float:
    return safe_number(resolve(record, field, default=fallback), fallback=fallback)


def resolve_text(record: Optional[Mapping[str, Any]], field: str) -> str:
    value = resolve(record, field, default="")
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _diagnosis(record: Mapping[str, Any]) -> Mapping[str, Any]:
    nested = record.get(DIAGNOSIS_KEY)
    return nested if isinstance(nested, Mapping) else {}


def _with_diagnosis(record: Mapping[str, Any], field: str) -> str:
    value = resolve_text(record, field)
    if value:
        return value
    nested_key = DIAGNOSIS_FIELDS.get(field)
    if nested_key is None:
        return ""
    nested = _diagnosis(record).get(nested_key)
    if _is_absent(nested):
        return ""
    return str(nested).strip()


def has_field(record: Optional[Mapping[str, Any]], field: str) -> bool:
    if not record:
        return False
    return any(k in record and not _is_absent(record[k]) for k in FIELD_ALIASES.get(field, [field]))


def resolve_record(record: Optional[Mapping[str, Any]]) -> CanonicalRecord:
    """Resolve every canonical field of a loosely-shaped record in one pass."""
    record = record or {}
    return CanonicalRecord(
        client_id=resolve_text(record, "clientId"),
        probability=resolve_number(record, "probability"),
        has_probability=has_field(record, "probability"),
        risk_level=resolve_text(record, "riskLevel"),
        primary_risk_factor=_with_diagnosis(record, "primaryRiskFactor"),
        primary_retention_factor=_with_diagnosis(record, "primaryRetentionFactor"),
        suggested_action=_with_diagnosis(record, "suggestedAction"),
    )
