# src/risk/snapshot.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Tuple

from src.upstream.connectivity import ConnectivityState

from .aggregation import RiskFactorStat, select_strategy
from .classifier import ClassifiedCustomer, classify_records
from .metrics import DashboardMetrics, normalize_metrics

logger = logging.getLogger(__name__)

DEFAULT_TAB = "dashboard"


@dataclass(frozen=True)
class DashboardSnapshot:
    """
    Fully computed dashboard data for one refresh cycle.

    Renderers read it, never mutate it; every change produces a new snapshot.
    """

    connectivity: ConnectivityState = ConnectivityState.CHECKING
    metrics: Optional[DashboardMetrics] = None
    classified_customers: Tuple[ClassifiedCustomer, ...] = ()
    risk_factor_stats: Tuple[RiskFactorStat, ...] = ()
    aggregation_source: str = ""
    selected_risk_factor: str = ""
    selected_client_id: Optional[str] = None
    active_tab: str = DEFAULT_TAB
    error: Optional[str] = None

    @property
    def can_show_data(self) -> bool:
        return self.connectivity is ConnectivityState.ONLINE

    def stat_for(self, display_name: str) -> Optional[RiskFactorStat]:
        for s in self.risk_factor_stats:
            if s.display_name == display_name:
                return s
        return None

    def selected_client(self) -> Optional[ClassifiedCustomer]:
        if not self.can_show_data or not self.classified_customers:
            return None
        for c in self.classified_customers:
            if str(c.client_id) == str(self.selected_client_id):
                return c
        return self.classified_customers[0]


def invalidate(connectivity: ConnectivityState, error: Optional[str] = None) -> DashboardSnapshot:
    # Safe default view: nothing derived survives outside ONLINE.
    return DashboardSnapshot(connectivity=connectivity, error=error)


def refresh_cycle(
    previous: Optional[DashboardSnapshot],
    connectivity: ConnectivityState,
    metrics_payload: Optional[Mapping[str, Any]] = None,
    client_records: Optional[Iterable[Mapping[str, Any]]] = None,
    error: Optional[str] = None,
) -> DashboardSnapshot:
    """
    Build the next snapshot from the previous one and freshly fetched inputs.

    Pure: classification and aggregation run only when connectivity is ONLINE.
    Selections survive a refresh only while they still point at live data.
    """
    if connectivity is not ConnectivityState.ONLINE:
        return invalidate(connectivity, error=error)

    previous = previous or DashboardSnapshot()
    customers = tuple(classify_records(client_records))
    strategy = select_strategy(customers, metrics_payload)
    stats = tuple(strategy.stats())

    logger.debug(
        "Snapshot rebuilt: %d customers, %d risk factors (%s)",
        len(customers), len(stats), strategy.source,
    )

    names = {s.display_name for s in stats}
    selected_factor = previous.selected_risk_factor if previous.selected_risk_factor in names else ""

    ids = {str(c.client_id) for c in customers}
    selected_client = previous.selected_client_id
    if selected_client is not None and str(selected_client) not in ids:
        selected_client = None

    return DashboardSnapshot(
        connectivity=connectivity,
        metrics=normalize_metrics(metrics_payload),
        classified_customers=customers,
        risk_factor_stats=stats,
        aggregation_source=strategy.source,
        selected_risk_factor=selected_factor,
        selected_client_id=selected_client,
        active_tab=previous.active_tab,
        error=error,
    )


def select_risk_factor(snapshot: DashboardSnapshot, display_name: str) -> DashboardSnapshot:
    if not snapshot.can_show_data or snapshot.stat_for(display_name) is None:
        return replace(snapshot, selected_risk_factor="")
    return replace(snapshot, selected_risk_factor=display_name)


def select_client(snapshot: DashboardSnapshot, client_id: Optional[str]) -> DashboardSnapshot:
    if not snapshot.can_show_data:
        return replace(snapshot, selected_client_id=None)
    return replace(snapshot, selected_client_id=client_id)


def select_tab(snapshot: DashboardSnapshot, tab: str) -> DashboardSnapshot:
    # Tabs other than the dashboard make live requests
    if not snapshot.can_show_data:
        return replace(snapshot, active_tab=DEFAULT_TAB)
    return replace(snapshot, active_tab=tab)
