# src/risk/aggregation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .classifier import ClassifiedCustomer
from .constants import RISK_FACTOR_SILL, UNKNOWN_LABEL
from .fields import safe_number
from .labels import translate


@dataclass(frozen=True)
class RiskFactorStat:
    display_name: str
    count: int
    total_considered: int

    @property
    def share(self) -> float:
        if self.total_considered <= 0:
            return 0.0
        return self.count / self.total_considered


def _ranked(stats: List[RiskFactorStat]) -> List[RiskFactorStat]:
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(stats, key=lambda s: s.count, reverse=True)


def upstream_risk_factors(summary: Any) -> list:
    """
    Extract the pre-aggregated `risk_factors` list from an upstream summary.

    Accepts the whole /dashboard/metrics payload or the list itself.
    Anything that is not a non-empty list counts as "not available".
    """
    if isinstance(summary, Mapping):
        summary = summary.get("risk_factors")
    if isinstance(summary, (list, tuple)) and len(summary) > 0:
        return [it for it in summary if isinstance(it, Mapping)]
    return []


class PreAggregated:
    """Counts supplied by the upstream service, used as-is."""

    source = "upstream"

    def __init__(self, items: Sequence[Mapping[str, Any]]):
        self.items = list(items)

    def stats(self) -> List[RiskFactorStat]:
        counts = {}
        total = 0
        for it in self.items:
            n = int(safe_number(it.get("count"), 0))
            total += n
            name = translate(it.get("name"))
            if name == UNKNOWN_LABEL:
                continue
            counts[name] = counts.get(name, 0) + n

        total = max(total, 1)
        return _ranked([RiskFactorStat(name, n, total) for name, n in counts.items()])


class Computed:
    """Counts derived locally from classified customers above the sill."""

    source = "computed"

    def __init__(self, customers: Iterable[ClassifiedCustomer], sill: float = RISK_FACTOR_SILL):
        self.customers = list(customers or [])
        self.sill = sill

    def stats(self) -> List[RiskFactorStat]:
        if not self.customers:
            return []

        df = pd.DataFrame(
            {
                "probability": [c.probability for c in self.customers],
                "factor": [c.risk_factor for c in self.customers],
            }
        )
        at_risk = df[df["probability"] > self.sill]
        total = len(at_risk)

        named = at_risk[at_risk["factor"] != UNKNOWN_LABEL]
        counts = named.groupby("factor", sort=False).size()

        return _ranked([RiskFactorStat(str(name), int(n), total) for name, n in counts.items()])


def select_strategy(customers: Iterable[ClassifiedCustomer], upstream_summary: Any = None):
    items = upstream_risk_factors(upstream_summary)
    if items:
        return PreAggregated(items)
    return Computed(customers)


def aggregate(
    customers: Optional[Iterable[ClassifiedCustomer]] = None,
    upstream_summary: Any = None,
) -> List[RiskFactorStat]:
    return select_strategy(customers or [], upstream_summary).stats()


def stats_frame(stats: Sequence[RiskFactorStat]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"risk_factor": s.display_name, "count": s.count, "total": s.total_considered, "share": s.share}
            for s in stats
        ],
        columns=["risk_factor", "count", "total", "share"],
    )
