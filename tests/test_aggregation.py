from decimal import Decimal

import pytest

from src.risk.aggregation import (
    Computed,
    PreAggregated,
    RiskFactorStat,
    aggregate,
    select_strategy,
    stats_frame,
)
from src.risk.classifier import classify_records


def _customers(probs, factors):
    return classify_records(
        [{"clientId": str(i), "probability": p, "primary_risk_factor": f}
         for i, (p, f) in enumerate(zip(probs, factors))]
    )


def _as_tuples(stats):
    return [(s.display_name, s.count, s.total_considered) for s in stats]


# ============================================================================
# Pre-aggregated path
# ============================================================================

def test_upstream_summary_is_used_directly():
    summary = {"risk_factors": [{"name": "País", "count": 8}, {"name": "Idade", "count": 12}]}
    local = _customers([0.9, 0.9], ["skip_rate", "skip_rate"])

    stats = aggregate(local, summary)

    assert _as_tuples(stats) == [("Idade", 12, 20), ("País", 8, 20)]


def test_upstream_summary_accepts_bare_list():
    stats = aggregate([], [{"name": "Idade", "count": 3}])
    assert _as_tuples(stats) == [("Idade", 3, 3)]


def test_upstream_total_has_floor_of_one():
    stats = aggregate([], {"risk_factors": [{"name": "Idade", "count": 0}]})
    assert stats[0].total_considered == 1
    assert stats[0].share == 0.0


def test_upstream_bad_counts_become_zero():
    stats = aggregate([], {"risk_factors": [{"name": "Idade", "count": "x"}, {"name": "País", "count": 4}]})
    assert _as_tuples(stats) == [("País", 4, 4), ("Idade", 0, 4)]


@pytest.mark.parametrize("count", [10**25, 10**400, "9" * 400, Decimal("3"), {"n": 1}, [2], None])
def test_upstream_malformed_counts_never_raise(count):
    stats = PreAggregated([{"name": "num__age", "count": count}, {"name": "País", "count": 2}]).stats()
    names = [s.display_name for s in stats]
    assert set(names) == {"Idade", "País"}
    assert all(s.count >= 0 and s.total_considered >= 1 for s in stats)


def test_upstream_oversized_count_is_kept():
    stats = aggregate([], {"risk_factors": [{"name": "Idade", "count": 10**25}]})
    assert stats[0].display_name == "Idade"
    assert stats[0].count == int(1e25)
    assert stats[0].share == 1.0


def test_empty_upstream_list_falls_back_to_local():
    local = _customers([0.9], ["age"])
    strategy = select_strategy(local, {"risk_factors": []})
    assert isinstance(strategy, Computed)
    assert _as_tuples(strategy.stats()) == [("Idade", 1, 1)]


def test_wrong_shaped_upstream_falls_back_to_local():
    local = _customers([0.9], ["age"])
    assert isinstance(select_strategy(local, {"risk_factors": "nope"}), Computed)
    assert isinstance(select_strategy(local, None), Computed)
    assert isinstance(select_strategy(local, {"risk_factors": [{"name": "Idade", "count": 1}]}), PreAggregated)


# ============================================================================
# Computed path
# ============================================================================

def test_fallback_filters_by_sill_and_groups():
    customers = _customers([0.9, 0.5, 0.46, 0.2], ["A", "A", "B", "C"])
    assert _as_tuples(aggregate(customers)) == [("A", 2, 3), ("B", 1, 3)]


def test_ties_keep_first_seen_order():
    customers = _customers([0.9, 0.9, 0.9, 0.9], ["B", "A", "A", "B"])
    assert _as_tuples(aggregate(customers)) == [("B", 2, 4), ("A", 2, 4)]


def test_unknown_factors_skipped_but_counted_in_total():
    customers = _customers([0.9, 0.8, 0.7], ["age", "", "N/A"])
    assert _as_tuples(aggregate(customers)) == [("Idade", 1, 3)]


def test_factors_are_translated_before_grouping():
    customers = _customers([0.9, 0.9], ["num__skip_rate", "skip_rate"])
    assert _as_tuples(aggregate(customers)) == [("Taxa de Pulagem", 2, 2)]


def test_non_numeric_probability_is_excluded():
    customers = classify_records([
        {"probability": "oops", "primary_risk_factor": "age"},
        {"probability": 0.9, "primary_risk_factor": "age"},
    ])
    assert _as_tuples(aggregate(customers)) == [("Idade", 1, 1)]


def test_sill_differs_from_moderate_boundary():
    # Known inconsistency: a MODERATE customer at 0.42 never reaches the panel.
    customers = _customers([0.42, 0.45], ["age", "age"])
    assert customers[0].band.value == "MODERATE"
    assert aggregate(customers) == []


def test_no_customers_gives_empty_stats():
    assert aggregate([]) == []
    assert aggregate(None) == []


# ============================================================================
# Output shape
# ============================================================================

def test_share_and_shape_identical_across_paths():
    upstream = aggregate([], {"risk_factors": [{"name": "Idade", "count": 1}]})
    local = aggregate(_customers([0.9], ["age"]))
    assert upstream == local == [RiskFactorStat("Idade", 1, 1)]
    assert upstream[0].share == pytest.approx(1.0)


def test_stats_frame():
    df = stats_frame([RiskFactorStat("Idade", 2, 4)])
    assert df.loc[0, "share"] == pytest.approx(0.5)
