# src/upstream/refresh.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.risk.snapshot import DashboardSnapshot, invalidate, refresh_cycle

from .client import ChurnApiClient, UpstreamError
from .connectivity import ConnectivityMonitor, ConnectivityState
from .credentials import CredentialProvider
from .settings import Settings

logger = logging.getLogger(__name__)


def _unwrap(result):
    # Expected transport failures become values; anything else is a bug and propagates.
    if isinstance(result, UpstreamError):
        return None, result
    if isinstance(result, BaseException):
        raise result
    return result, None


async def refresh(
    api: ChurnApiClient,
    monitor: ConnectivityMonitor,
    previous: Optional[DashboardSnapshot] = None,
) -> DashboardSnapshot:
    """
    Run one refresh cycle: probe and fetches go out concurrently, the
    snapshot is rebuilt only when the probe reports UP and both fetches
    succeeded. If two refreshes overlap, whichever finishes last wins.
    """
    monitor.begin_check()

    results = await asyncio.gather(
        api.health(),
        api.dashboard_metrics(),
        api.list_clients(),
        return_exceptions=True,
    )
    health, health_err = _unwrap(results[0])
    metrics, metrics_err = _unwrap(results[1])
    records, records_err = _unwrap(results[2])

    if health_err is not None:
        state = monitor.record_failure(health_err)
        return invalidate(state, error=monitor.last_error)

    state = monitor.record_probe(health)
    if state is not ConnectivityState.ONLINE:
        return invalidate(state)

    fetch_err = metrics_err or records_err
    if fetch_err is not None:
        logger.warning("Dashboard data fetch failed: %s", fetch_err)
        return invalidate(state, error=f"Falha ao carregar dados do dashboard: {fetch_err}")

    return refresh_cycle(previous, state, metrics_payload=metrics, client_records=records)


async def _refresh_once(settings, monitor, previous, credentials, transport) -> DashboardSnapshot:
    async with ChurnApiClient(settings, credentials=credentials, transport=transport) as api:
        return await refresh(api, monitor, previous)


def run_refresh(
    settings: Settings,
    monitor: ConnectivityMonitor,
    previous: Optional[DashboardSnapshot] = None,
    credentials: Optional[CredentialProvider] = None,
    transport=None,
) -> DashboardSnapshot:
    """Blocking entry point for callers without an event loop (the Streamlit app)."""
    return asyncio.run(_refresh_once(settings, monitor, previous, credentials, transport))


async def _predict_once(settings, profile, credentials, transport):
    async with ChurnApiClient(settings, credentials=credentials, transport=transport) as api:
        return await api.predict(profile)


def run_prediction(settings: Settings, profile: dict, credentials=None, transport=None):
    return asyncio.run(_predict_once(settings, profile, credentials, transport))
