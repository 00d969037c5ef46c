# src/risk/metrics.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from .aggregation import upstream_risk_factors
from .fields import safe_number


@dataclass(frozen=True)
class DashboardMetrics:
    total_customers: int
    global_churn_rate: float  # already a percentage
    customers_at_risk: int
    revenue_at_risk: float
    model_accuracy: float  # fraction 0..1
    churn_distribution: Optional[Tuple[int, int]]  # (stay, churn); None when malformed
    feature_importance: List[dict] = field(default_factory=list)
    risk_factors: List[dict] = field(default_factory=list)

    @property
    def model_accuracy_pct(self) -> float:
        return self.model_accuracy * 100


def _distribution(raw: Any) -> Optional[Tuple[int, int]]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return None
    stay, churn = (int(safe_number(v, 0)) for v in raw)
    return stay, churn


def _feature_importance(raw: Any) -> List[dict]:
    if not isinstance(raw, (list, tuple)):
        return []
    out = []
    for it in raw:
        if not isinstance(it, Mapping) or not it.get("name"):
            continue
        out.append({"name": str(it["name"]), "value": safe_number(it.get("value"), 0.0)})
    return out


def normalize_metrics(data: Optional[Mapping[str, Any]]) -> Optional[DashboardMetrics]:
    """
    Normalize the /dashboard/metrics payload (snake_case) into DashboardMetrics.

    Wrong-shaped sub-fields are treated as "not available" rather than errors.
    """
    if not isinstance(data, Mapping):
        return None

    accuracy = safe_number(data.get("model_accuracy"), 0.0)
    # Some deployments already send a percentage
    if accuracy > 1:
        accuracy = accuracy / 100

    return DashboardMetrics(
        total_customers=int(safe_number(data.get("total_customers"), 0)),
        global_churn_rate=safe_number(data.get("global_churn_rate"), 0.0),
        customers_at_risk=int(safe_number(data.get("customers_at_risk"), 0)),
        revenue_at_risk=safe_number(data.get("revenue_at_risk"), 0.0),
        model_accuracy=accuracy,
        churn_distribution=_distribution(data.get("churn_distribution")),
        feature_importance=_feature_importance(data.get("feature_importance")),
        risk_factors=[dict(it) for it in upstream_risk_factors(data)],
    )
