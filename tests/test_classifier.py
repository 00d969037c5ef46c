from decimal import Decimal

import pandas as pd
import pytest

from src.risk.classifier import (
    RiskBand,
    band_series,
    classify,
    classify_customer,
    classify_records,
    customers_frame,
)
from src.risk.constants import MODERATE_PROFILE, NO_RETENTION_FACTOR, NO_RISK_FACTOR


# ============================================================================
# Band thresholds
# ============================================================================

@pytest.mark.parametrize("p,band", [
    (0.0, RiskBand.LOW),
    (0.3999, RiskBand.LOW),
    (0.4, RiskBand.MODERATE),
    (0.5999, RiskBand.MODERATE),
    (0.6, RiskBand.HIGH),
    (1.0, RiskBand.HIGH),
])
def test_band_edges(p, band):
    assert classify(p).band is band


def test_bands_partition_unit_interval():
    for i in range(0, 1001):
        band = classify(i / 1000).band
        assert band in (RiskBand.LOW, RiskBand.MODERATE, RiskBand.HIGH)


def test_clamping():
    assert classify(1.5).probability == classify(1.0).probability == 1.0
    assert classify(-0.2).probability == 0.0
    assert classify(-0.2).band is RiskBand.LOW
    assert classify(7).band is RiskBand.HIGH


def test_unparseable_probability_counts_as_zero():
    result = classify("garbage")
    assert result.probability == 0.0
    assert result.band is RiskBand.LOW


def test_string_probability_is_coerced():
    assert classify("0.61").band is RiskBand.HIGH


# ============================================================================
# Upstream label precedence
# ============================================================================

def test_label_overrides_numeric_band():
    assert classify(0.1, "ALTO RISCO").band is RiskBand.HIGH
    assert classify(0.95, "baixo").band is RiskBand.LOW
    assert classify(0.1, "Moderate").band is RiskBand.MODERATE


def test_label_families_checked_in_order():
    # "low" is tested before "high"
    assert classify(0.5, "low-high").band is RiskBand.LOW


def test_unrecognized_label_falls_back_to_numeric():
    assert classify(0.7, "critical").band is RiskBand.HIGH
    assert classify(0.7, "   ").band is RiskBand.HIGH


def test_no_probability_and_no_label_is_unknown():
    assert classify(None).band is RiskBand.UNKNOWN
    assert classify(None, "alto").band is RiskBand.HIGH


# ============================================================================
# classify_customer
# ============================================================================

def test_low_band_suppresses_risk_factor():
    customer = classify_customer({"clientId": "c1", "probability": 0.1, "primary_risk_factor": "skip_rate"})
    assert customer.band is RiskBand.LOW
    assert customer.risk_factor_display == NO_RISK_FACTOR
    # the translated factor is still kept for aggregation
    assert customer.risk_factor == "Taxa de Pulagem"


def test_low_label_suppresses_even_with_high_probability():
    customer = classify_customer({"probability": 0.9, "risk_level": "Baixo", "primary_risk_factor": "age"})
    assert customer.band is RiskBand.LOW
    assert customer.risk_factor_display == NO_RISK_FACTOR


def test_high_band_shows_translated_factor():
    customer = classify_customer({"user_id": 42, "churn_probability": 0.8, "main_factor": "num__skip_rate"})
    assert customer.client_id == "42"
    assert customer.band is RiskBand.HIGH
    assert customer.risk_factor_display == "Taxa de Pulagem"


def test_moderate_without_factor_shows_profile():
    customer = classify_customer({"probability": 0.5})
    assert customer.risk_factor_display == MODERATE_PROFILE


def test_retention_factor_fallback_and_translation():
    assert classify_customer({"probability": 0.5}).retention_factor_display == NO_RETENTION_FACTOR
    customer = classify_customer({"probability": 0.5, "primaryRetentionFactor": "offline_listening"})
    assert customer.retention_factor_display == "Uso Offline"


def test_prediction_payload_with_diagnosis():
    customer = classify_customer({
        "probability": 0.66,
        "ai_diagnosis": {"primary_risk_factor": "ads_listened_per_week", "suggested_action": "Oferecer Premium"},
    })
    assert customer.band is RiskBand.HIGH
    assert customer.risk_factor_display == "Anúncios por Semana"
    assert customer.suggested_action == "Oferecer Premium"


def test_classify_records_skips_non_mappings():
    customers = classify_records([{"probability": 0.2}, "junk", None])
    assert len(customers) == 1


# ============================================================================
# Vectorized banding
# ============================================================================

def test_band_series_matches_scalar_rule():
    p = pd.Series([0.0, 0.3999, 0.4, 0.5999, 0.6, 1.0, 1.7, None, "x"])
    expected = ["LOW", "LOW", "MODERATE", "MODERATE", "HIGH", "HIGH", "HIGH", "LOW", "LOW"]
    assert band_series(p).tolist() == expected


def test_customers_frame_columns():
    df = customers_frame(classify_records([{"clientId": "a", "probability": 0.7}]))
    assert list(df.columns) == [
        "client_id", "churn_probability", "risk_band", "threshold_band", "risk_factor", "retention_factor",
    ]
    assert df.loc[0, "risk_band"] == "HIGH"
    assert df.loc[0, "threshold_band"] == "HIGH"


def test_customers_frame_shows_label_override():
    df = customers_frame(classify_records([{"clientId": "a", "probability": 0.7, "risk_level": "Baixo"}]))
    assert df.loc[0, "risk_band"] == "LOW"
    assert df.loc[0, "threshold_band"] == "HIGH"


def test_customers_frame_empty():
    df = customers_frame([])
    assert df.empty
    assert "threshold_band" in df.columns


# ============================================================================
# Malformed upstream values
# ============================================================================

@pytest.mark.parametrize("raw,band", [
    (10**30, "HIGH"),
    (-10**30, "LOW"),
    (10**400, "LOW"),
    (Decimal("0.55"), "MODERATE"),
    (Decimal("sNaN"), "LOW"),
    ({"value": 0.9}, "LOW"),
    ([0.9], "LOW"),
])
def test_classify_customer_survives_malformed_probability(raw, band):
    c = classify_customer({"clientId": "x", "probability": raw, "primary_risk_factor": "num__age"})
    assert c.band.value == band
    assert 0.0 <= c.probability <= 1.0


def test_classify_records_survives_oversized_values():
    customers = classify_records([
        {"clientId": "a", "probability": 10**30, "risk_level": {"nested": True}},
        {"clientId": 10**40, "probability": 0.1, "ai_diagnosis": [1, 2]},
    ])
    assert [c.band.value for c in customers] == ["HIGH", "LOW"]
