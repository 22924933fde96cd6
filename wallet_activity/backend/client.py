"""
Backend order client: list orders for an address, patch order status.

Thin httpx wrapper. Every transport, HTTP or payload failure is raised as
BackendError; the sync service decides to log and continue.
"""

from __future__ import annotations

from typing import Any

import httpx

from wallet_activity.activity.models import ActivityStatus
from wallet_activity.activity_logging import get_logger
from wallet_activity.backend.formatter import BackendOrder
from wallet_activity.core.exceptions import BackendError

logger = get_logger(__name__)


class BackendOrderClient:
    """
    Async client for the order backend.

        GET   {base_url}/orders?address=<address>
        PATCH {base_url}/orders/{id}   {"status": ..., "updatedAt": ...}
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_token: str | None = None,
        client: httpx.AsyncClient | None = None,
        request_timeout_sec: float = 10.0,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = request_timeout_sec
        self._headers: dict[str, str] = {"Accept": "application/json"}
        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token}"

    async def list_orders(self, address: str) -> list[BackendOrder]:
        """All orders submitted for address. Malformed items are skipped."""
        data = await self._request("GET", "/orders", params={"address": address})
        items = data.get("orders") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise BackendError("GET /orders returned an unexpected payload")
        orders: list[BackendOrder] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                orders.append(BackendOrder.from_api(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("backend_order_item_skipped", error=str(e))
        logger.debug("backend_orders_listed", order_count=len(orders))
        return orders

    async def patch_order(self, order_id: str, status: ActivityStatus, updated_at: int) -> None:
        """Push a status change for one order."""
        await self._request(
            "PATCH",
            f"/orders/{order_id}",
            json={"status": status.value, "updatedAt": updated_at},
        )
        logger.info("backend_order_patched", order_id=order_id, status=status.value)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, params=params, json=json, headers=self._headers)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                    resp = await client.request(method, url, params=params, json=json, headers=self._headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e
