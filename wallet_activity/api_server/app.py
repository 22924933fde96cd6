"""
FastAPI app: read API over merged activities plus an on-demand sync.

    GET  /health
    GET  /activities/{address}        merged activities, newest first
    POST /activities/{address}/sync   run one reconciliation pass now

API-only: uvicorn wallet_activity.api_server.app:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from solders.pubkey import Pubkey

from wallet_activity import __version__
from wallet_activity.activity_logging import get_logger
from wallet_activity.config.settings import get_settings
from wallet_activity.core.exceptions import StateStoreError, UpstreamUnavailableError
from wallet_activity.sync.poller import ActivityPoller
from wallet_activity.sync.service import ActivitySyncService

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class ActivityModel(BaseModel):
    """One activity as stored (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    signature: str
    slot: str
    status: str = Field(..., description="pending | confirmed | failed")
    updatedAt: int = Field(..., description="Epoch milliseconds")
    blockExplorerUrl: str
    chainId: str
    network: str
    rawDate: str
    action: str = Field(..., description="send | receive | unknown")
    type: str
    from_: str | None = Field(None, alias="from")
    to: str | None = None
    cryptoAmount: str | int | None = None
    cryptoCurrency: str | None = None
    decimal: int
    totalAmountString: str | None = None
    mintAddress: str | None = None
    fee: int | None = None
    id: str | None = Field(None, description="Backend order id, when backend-originated")


class ActivityListResponse(BaseModel):
    address: str
    activities: list[ActivityModel] = Field(default_factory=list)


class StatusChangeModel(BaseModel):
    activityId: str
    signature: str
    status: str
    updatedAt: int


class SyncResponse(BaseModel):
    address: str
    listed: int
    fetched: int
    inserted: int
    updated: int
    total: int
    backendAvailable: bool
    statusChanges: list[StatusChangeModel] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------


def _validate_address(address: str) -> str:
    address = (address or "").strip()
    try:
        Pubkey.from_string(address)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid Solana address: {address}") from e
    return address


def _service(request: Request) -> ActivitySyncService:
    return request.app.state.service


def create_app(
    service: ActivitySyncService | None = None,
    *,
    poll_addresses: list[str] | None = None,
    poll_tracked: bool = False,
) -> FastAPI:
    """
    App bound to service; when None, the service is built from settings at startup.

    With poll_addresses, an ActivityPoller runs in the app's event loop for the
    lifetime of the server. With poll_tracked instead, the poller re-reads the
    store's tracked addresses every cycle (wallets synced once via the API
    stay polled).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        if getattr(app.state, "service", None) is None:
            from wallet_activity.sync.factory import build_service

            app.state.service, _ = build_service(settings)
        service = app.state.service
        poller = None
        poller_task = None
        if poll_addresses or poll_tracked:
            poller = ActivityPoller(
                service,
                poll_addresses or service.tracked_addresses,
                poll_interval_sec=settings.poll_interval_sec,
            )
            poller_task = asyncio.create_task(poller.run_forever())
            logger.info(
                "api_poller_started",
                wallet_count=len(poll_addresses) if poll_addresses else None,
                source="configured" if poll_addresses else "store",
            )
        yield
        if poller is not None:
            poller.stop()
            await poller_task
        await service.drain_patches()

    app = FastAPI(title="Wallet Activity", version=__version__, lifespan=lifespan)
    app.state.service = service

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__}

    @app.get("/activities/{address}", response_model=ActivityListResponse)
    async def get_activities(address: str, request: Request) -> ActivityListResponse:
        address = _validate_address(address)
        try:
            activities = await _service(request).get_merged_activities(address)
        except StateStoreError as e:
            logger.exception("api_activities_load_failed", wallet_id=address, error=str(e))
            raise HTTPException(status_code=500, detail="Could not load activities") from e
        return ActivityListResponse(
            address=address,
            activities=[ActivityModel.model_validate(a.to_dict()) for a in activities],
        )

    @app.post("/activities/{address}/sync", response_model=SyncResponse)
    async def sync_activities(address: str, request: Request) -> SyncResponse:
        address = _validate_address(address)
        try:
            result = await _service(request).run_pass(address)
        except UpstreamUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        except StateStoreError as e:
            logger.exception("api_sync_store_failed", wallet_id=address, error=str(e))
            raise HTTPException(status_code=500, detail="Could not persist activities") from e
        return SyncResponse.model_validate(result.to_dict())

    return app


app = create_app()
