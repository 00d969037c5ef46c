# src/risk/classifier.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

from .constants import (
    BAND_DISPLAY,
    LABEL_FAMILIES,
    LOW_MAX,
    MODERATE_MAX,
    MODERATE_PROFILE,
    NO_RETENTION_FACTOR,
    NO_RISK_FACTOR,
    UNKNOWN_LABEL,
)
from .fields import resolve_record, safe_number
from .labels import translate


class RiskBand(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"  # display only

    @property
    def display(self) -> dict:
        return BAND_DISPLAY[self.value]


@dataclass(frozen=True)
class Classification:
    probability: float
    band: RiskBand


@dataclass(frozen=True)
class ClassifiedCustomer:
    client_id: str
    probability: float
    band: RiskBand
    risk_factor: str
    risk_factor_display: str
    retention_factor_display: str
    suggested_action: str = ""


def clamp_probability(value: Any) -> float:
    return min(max(safe_number(value, 0.0), 0.0), 1.0)


def band_from_probability(p: float) -> RiskBand:
    if p < LOW_MAX:
        return RiskBand.LOW
    if p < MODERATE_MAX:
        return RiskBand.MODERATE
    return RiskBand.HIGH


def band_from_label(label: Any) -> Optional[RiskBand]:
    if not isinstance(label, str) or not label.strip():
        return None
    text = label.lower()
    for band, needles in LABEL_FAMILIES:
        if any(n in text for n in needles):
            return RiskBand(band)
    return None


def classify(probability_raw: Any, upstream_label: Optional[str] = None) -> Classification:
    """
    Clamp the probability and assign a band.

    A recognizable upstream label wins over the thresholds. An absent
    probability (None) with no usable label yields UNKNOWN; any other
    unparseable value counts as 0.
    """
    p = clamp_probability(probability_raw)
    labelled = band_from_label(upstream_label)
    if labelled is not None:
        return Classification(probability=p, band=labelled)
    if probability_raw is None:
        return Classification(probability=p, band=RiskBand.UNKNOWN)
    return Classification(probability=p, band=band_from_probability(p))


def band_series(p: pd.Series) -> pd.Series:
    # Vectorized version of band_from_probability for tables
    values = pd.to_numeric(p, errors="coerce").fillna(0).clip(0, 1)
    return pd.Series(
        np.select(
            [values < LOW_MAX, values < MODERATE_MAX],
            [RiskBand.LOW.value, RiskBand.MODERATE.value],
            default=RiskBand.HIGH.value,
        ),
        index=p.index,
    )


def classify_customer(record: Mapping[str, Any]) -> ClassifiedCustomer:
    rec = resolve_record(record)
    result = classify(rec.probability if rec.has_probability else None, rec.risk_level)

    risk_factor = translate(rec.primary_risk_factor)

    # Low-risk customers never show a risk factor, whatever the model flagged.
    if result.band not in (RiskBand.MODERATE, RiskBand.HIGH):
        risk_factor_display = NO_RISK_FACTOR
    elif risk_factor == UNKNOWN_LABEL:
        risk_factor_display = MODERATE_PROFILE
    else:
        risk_factor_display = risk_factor

    if rec.primary_retention_factor:
        retention = translate(rec.primary_retention_factor)
    else:
        retention = NO_RETENTION_FACTOR

    return ClassifiedCustomer(
        client_id=rec.client_id,
        probability=result.probability,
        band=result.band,
        risk_factor=risk_factor,
        risk_factor_display=risk_factor_display,
        retention_factor_display=retention,
        suggested_action=rec.suggested_action,
    )


def classify_records(records) -> list[ClassifiedCustomer]:
    return [classify_customer(r) for r in records or [] if isinstance(r, Mapping)]


def customers_frame(customers) -> pd.DataFrame:
    """
    Tabular view of classified customers for display and export.

    `threshold_band` is the band the probability alone would give; it differs
    from `risk_band` when an upstream label overrode the thresholds.
    """
    rows = [
        {
            "client_id": c.client_id,
            "churn_probability": c.probability,
            "risk_band": c.band.value,
            "risk_factor": c.risk_factor_display,
            "retention_factor": c.retention_factor_display,
        }
        for c in customers
    ]
    cols = ["client_id", "churn_probability", "risk_band", "threshold_band", "risk_factor", "retention_factor"]
    df = pd.DataFrame(rows, columns=[c for c in cols if c != "threshold_band"])
    df["threshold_band"] = band_series(df["churn_probability"])
    return df[cols]
