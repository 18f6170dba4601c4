"""Thin async client for the Pinterest v5 REST API.

Only the two read endpoints the pin sync needs are wrapped. Errors are raised,
not swallowed: a failed page must stop the sync run that asked for it.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import httpx

from asset_ops.domain.errors import ConfigurationError, PinterestAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.pinterest.com/v5"
TOP_PINS_METRICS = "OUTBOUND_CLICK,IMPRESSION,PIN_CLICK,SAVE"


class PinterestClient:
    """Async Pinterest client authenticated with a bearer token."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not access_token:
            raise ConfigurationError("Missing PINTEREST_ACCESS_TOKEN")
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        url = f"{self._base_url}{endpoint}"
        logger.info("[Pinterest API] Fetching: %s %s", url, params or {})
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.get(url, params=params, headers=headers)

        if resp.status_code >= 400:
            raise PinterestAPIError(resp.status_code, resp.text)
        return resp.json()

    async def top_pins(
        self,
        start_date: date,
        end_date: date,
        limit: int = 50,
    ) -> list[dict]:
        """Top pins by outbound clicks over the window, with metrics."""
        data = await self._get(
            "/user_account/analytics/top_pins",
            {
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "sort_by": "OUTBOUND_CLICK",
                "metric_types": TOP_PINS_METRICS,
                "limit": str(limit),
            },
        )
        return data.get("items") or []

    async def list_pins(self, bookmark: Optional[str] = None, page_size: int = 25) -> tuple[list[dict], Optional[str]]:
        """One page of the account's pins. Returns (items, next_bookmark)."""
        params = {"page_size": str(page_size)}
        if bookmark:
            params["bookmark"] = bookmark
        data = await self._get("/pins", params)
        return data.get("items") or [], data.get("bookmark")


def get_pinterest_client() -> PinterestClient:
    """Build a client from application settings."""
    from asset_ops.app.config import get_settings

    settings = get_settings()
    return PinterestClient(settings.pinterest_access_token, settings.pinterest_api_url)
