# src/upstream/client.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .credentials import CredentialProvider, CredentialsError, SettingsCredentials
from .settings import Settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


def _error_message(resp: httpx.Response) -> tuple[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        body = {"message": resp.text or "Unknown error"}
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or json.dumps(body)
    else:
        message = str(body)
    return message or f"HTTP {resp.status_code}", body


def _parse_body(resp: httpx.Response) -> Any:
    # Tolerate empty and non-JSON bodies
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def records_from_page(payload: Any) -> List[Dict[str, Any]]:
    """Client list from a paginated response ({"content": [...]}) or a bare list."""
    if isinstance(payload, dict):
        payload = payload.get("content", payload.get("items"))
    if not isinstance(payload, list):
        return []
    return [r for r in payload if isinstance(r, dict)]


class ChurnApiClient:
    """
    Async client for the prediction service.

    Usage:
        async with ChurnApiClient(settings) as api:
            health = await api.health()
    """

    def __init__(
        self,
        settings: Settings,
        credentials: Optional[CredentialProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.credentials = credentials or SettingsCredentials(settings)
        self._client = httpx.AsyncClient(
            base_url=settings.api_url,
            timeout=settings.timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ChurnApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, authenticated: bool = True, **kwargs) -> Any:
        if authenticated:
            try:
                kwargs["auth"] = httpx.BasicAuth(*self.credentials.get())
            except CredentialsError as exc:
                raise UpstreamError(str(exc)) from exc
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            message, body = _error_message(resp)
            raise UpstreamError(message, status=resp.status_code, body=body)
        return _parse_body(resp)

    # ---- system ----

    async def health(self) -> Any:
        return await self._request("GET", "/actuator/health")

    # ---- dashboard ----

    async def dashboard_metrics(self) -> Any:
        return await self._request("GET", "/dashboard/metrics")

    async def list_clients(self, page: int = 0, size: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"page": page, "size": size or self.settings.page_size}
        try:
            return records_from_page(await self._request("GET", "/clients", params=params))
        except UpstreamError as err:
            logger.warning("Authenticated client list failed (%s); trying public sample", err)
            try:
                payload = await self._request("GET", "/public/clients/list", authenticated=False, params=params)
            except UpstreamError:
                raise err
            return records_from_page(payload)

    # ---- predictions ----

    async def predict(self, profile: Dict[str, Any]) -> Any:
        return await self._request("POST", "/predict", json=profile)
