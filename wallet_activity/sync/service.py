"""
Activity sync service: one reconciliation pass per address.

    list signatures -> drop confirmed -> fetch parsed txs (concurrent)
    -> classify -> list backend orders -> merge (backend first, then chain)
    -> store.save (commit) -> publish status changes -> patch backend

The store write is the single commit point: an upstream failure or a
cancellation before it leaves the committed collection untouched. Backend
listing and patching are best-effort; their failures are logged and never
undo the commit. Passes for different addresses share nothing but the
collaborators; passes for the same address are serialised.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from wallet_activity.activity.classifier import ClassifierContext, classify
from wallet_activity.activity.models import Activity, StatusChange
from wallet_activity.activity.reconcile import (
    merge_pass,
    select_signatures_to_fetch,
    sort_activities,
)
from wallet_activity.activity_logging import get_logger, pass_context
from wallet_activity.backend.formatter import orders_to_activities
from wallet_activity.config.settings import Settings
from wallet_activity.core.exceptions import BackendError, UpstreamUnavailableError
from wallet_activity.ports import BackendOrderSource, SignatureSource, StateStore, TransactionSource
from wallet_activity.sync.events import StatusEventBus

logger = get_logger(__name__)


@dataclass
class PassResult:
    """Summary of one committed reconciliation pass."""

    address: str
    listed: int
    fetched: int
    inserted: int
    updated: int
    total: int
    backend_available: bool
    status_changes: list[StatusChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "listed": self.listed,
            "fetched": self.fetched,
            "inserted": self.inserted,
            "updated": self.updated,
            "total": self.total,
            "backendAvailable": self.backend_available,
            "statusChanges": [c.to_dict() for c in self.status_changes],
        }


class ActivitySyncService:
    def __init__(
        self,
        settings: Settings,
        signature_source: SignatureSource,
        transaction_source: TransactionSource,
        store: StateStore,
        *,
        backend: BackendOrderSource | None = None,
        events: StatusEventBus | None = None,
        max_supported_transaction_version: int = 0,
    ) -> None:
        self._settings = settings
        self._signatures = signature_source
        self._transactions = transaction_source
        self._store = store
        self._backend = backend
        self.events = events or StatusEventBus()
        self._max_tx_version = max_supported_transaction_version
        self._locks: dict[str, asyncio.Lock] = {}
        self._patch_tasks: set[asyncio.Task] = set()

    def _lock_for(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        return lock

    async def run_pass(self, address: str) -> PassResult:
        """
        Run one reconciliation pass for address.

        Raises UpstreamUnavailableError when signatures or transactions cannot
        be fetched; nothing is committed in that case.
        """
        async with self._lock_for(address):
            with pass_context(address):
                return await self._run_pass_locked(address)

    async def _run_pass_locked(self, address: str) -> PassResult:
        context = ClassifierContext.from_settings(self._settings, address)
        existing = await asyncio.to_thread(self._store.load, address)

        try:
            listed = await self._signatures.list_signatures(address, self._settings.signatures_limit)
            to_fetch = select_signatures_to_fetch(existing, listed)
            txs = await self._transactions.get_parsed_transactions(
                [info.signature for info in to_fetch],
                max_supported_transaction_version=self._max_tx_version,
            )
        except UpstreamUnavailableError as e:
            logger.warning("activity_pass_upstream_unavailable", method=e.method, error=str(e))
            raise
        if len(txs) != len(to_fetch):
            raise UpstreamUnavailableError(
                f"transaction source returned {len(txs)} results for {len(to_fetch)} signatures",
                method="getTransaction",
            )
        onchain = [classify(tx, info, context) for info, tx in zip(to_fetch, txs)]

        backend_activities, backend_available = await self._load_backend_activities(address, context)

        result = merge_pass(existing, backend_activities, onchain)
        await asyncio.to_thread(self._store.save, address, result.activities)
        logger.info(
            "activity_pass_committed",
            listed=len(listed),
            fetched=len(to_fetch),
            inserted=result.inserted,
            updated=result.updated,
            status_changes=len(result.status_changes),
            total=len(result.activities),
        )

        for change in result.status_changes:
            await self.events.publish(address, change)
            self._schedule_patch(address, change)

        return PassResult(
            address=address,
            listed=len(listed),
            fetched=len(to_fetch),
            inserted=result.inserted,
            updated=result.updated,
            total=len(result.activities),
            backend_available=backend_available,
            status_changes=list(result.status_changes),
        )

    async def _load_backend_activities(
        self,
        address: str,
        context: ClassifierContext,
    ) -> tuple[list[Activity], bool]:
        if self._backend is None:
            return [], False
        try:
            orders = await self._backend.list_orders(address)
        except BackendError as e:
            logger.warning("backend_orders_unavailable", error=str(e))
            return [], False
        try:
            return orders_to_activities(orders, context), True
        except (AttributeError, TypeError, ValueError, ArithmeticError) as e:
            logger.exception("backend_orders_unmappable", error=str(e))
            return [], False

    def _schedule_patch(self, address: str, change: StatusChange) -> None:
        """Fire-and-forget; the task reference is kept until it finishes."""
        if self._backend is None or change.from_backend:
            return
        task = asyncio.create_task(self._patch(address, change))
        self._patch_tasks.add(task)
        task.add_done_callback(self._patch_tasks.discard)

    async def _patch(self, address: str, change: StatusChange) -> None:
        with pass_context(address, order_id=change.activity_id):
            try:
                await self._backend.patch_order(change.activity_id, change.status, change.updated_at)
            except BackendError as e:
                # not retried in this pass; the next pass re-emits if still out of sync
                logger.warning("backend_patch_failed", status=change.status.value, error=str(e))
            except Exception as e:
                logger.exception("backend_patch_error", error=str(e))

    async def drain_patches(self) -> None:
        """Wait for in-flight backend patches (shutdown and tests)."""
        if self._patch_tasks:
            await asyncio.gather(*list(self._patch_tasks), return_exceptions=True)

    def tracked_addresses(self) -> list[str]:
        """Addresses with committed activity; the poller's source when no wallets are configured."""
        return self._store.addresses()

    async def get_merged_activities(self, address: str) -> list[Activity]:
        """Committed activities for address, newest first."""
        activities = await asyncio.to_thread(self._store.load, address)
        return sort_activities(activities.values())
