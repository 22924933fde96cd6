"""Wire the bundled collaborators into an ActivitySyncService from Settings."""

from __future__ import annotations

from wallet_activity.activity_logging import get_logger
from wallet_activity.backend.client import BackendOrderClient
from wallet_activity.config.env import mask_rpc_url
from wallet_activity.config.settings import Settings
from wallet_activity.database.sql_store import SqlStateStore
from wallet_activity.solana_listener.rpc_client import SolanaRpcClient
from wallet_activity.sync.service import ActivitySyncService

logger = get_logger(__name__)


def build_service(settings: Settings) -> tuple[ActivitySyncService, SqlStateStore]:
    """RPC client + optional backend client + SQL store; creates tables."""
    rpc = SolanaRpcClient(
        settings.solana_rpc_url,
        request_timeout_sec=settings.request_timeout_sec,
        max_retries=settings.max_retries,
        max_concurrent_requests=settings.max_concurrent_fetches,
    )
    backend = None
    if settings.backend_url:
        backend = BackendOrderClient(
            settings.backend_url,
            api_token=settings.backend_token,
            request_timeout_sec=settings.request_timeout_sec,
        )
    store = SqlStateStore(settings.database_url)
    store.init_db()
    logger.info(
        "sync_service_built",
        network=settings.solana_network,
        rpc_url=mask_rpc_url(settings.solana_rpc_url),
        backend_enabled=backend is not None,
    )
    service = ActivitySyncService(settings, rpc, rpc, store, backend=backend)
    return service, store
