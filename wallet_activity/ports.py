"""
Interfaces of the external collaborators a reconciliation pass consumes.

SolanaRpcClient, BackendOrderClient, InMemoryStateStore and SqlStateStore
are the bundled implementations; tests substitute fakes.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from wallet_activity.activity.models import Activity, ActivityStatus
from wallet_activity.backend.formatter import BackendOrder
from wallet_activity.solana_listener.models import ParsedTransaction, SignatureInfo


class SignatureSource(Protocol):
    async def list_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        """Newest first, at most `limit` items."""
        ...


class TransactionSource(Protocol):
    async def get_parsed_transactions(
        self,
        signatures: Sequence[str],
        *,
        max_supported_transaction_version: int = 0,
    ) -> list[ParsedTransaction | None]:
        """Index-aligned with `signatures`; None marks an unavailable transaction."""
        ...


class BackendOrderSource(Protocol):
    async def list_orders(self, address: str) -> list[BackendOrder]: ...

    async def patch_order(self, order_id: str, status: ActivityStatus, updated_at: int) -> None: ...


class StateStore(Protocol):
    def load(self, address: str) -> dict[str, Activity]: ...

    def save(self, address: str, activities: dict[str, Activity]) -> None: ...

    def addresses(self) -> list[str]:
        """Addresses with at least one committed activity."""
        ...
