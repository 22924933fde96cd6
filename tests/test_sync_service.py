"""
Pytest tests for ActivitySyncService (one reconciliation pass per address).

Signature/transaction sources and the backend are in-process fakes; state
lives in InMemoryStateStore.
"""

from __future__ import annotations

import asyncio

import pytest

from wallet_activity.activity.models import ActivityStatus
from wallet_activity.backend.formatter import BackendOrder
from wallet_activity.core.exceptions import BackendError, UpstreamUnavailableError
from wallet_activity.database.memory_store import InMemoryStateStore
from wallet_activity.solana_listener.models import (
    ParsedInstruction,
    ParsedTransaction,
    ParsedTransactionMeta,
    ProgramName,
    SignatureInfo,
)
from wallet_activity.sync.service import ActivitySyncService

USER_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_WALLET = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def _transfer_tx(slot: int, lamports: int = 1_000_000_000, err=None) -> ParsedTransaction:
    ix = ParsedInstruction(
        program_id="11111111111111111111111111111111",
        program=ProgramName.SYSTEM,
        parsed_type="transfer",
        info={"source": USER_WALLET, "destination": OTHER_WALLET, "lamports": lamports},
    )
    return ParsedTransaction(
        slot=slot,
        block_time=1_700_000_000 + slot,
        instructions=(ix,),
        meta=ParsedTransactionMeta(err=err, fee=5000),
    )


class FakeChain:
    """Signature and transaction source backed by a dict; records fetches."""

    def __init__(self, txs: dict[str, ParsedTransaction | None], *, fail: bool = False) -> None:
        self.txs = txs
        self.fail = fail
        self.fetched: list[list[str]] = []
        self.short_results = False

    async def list_signatures(self, address, limit):
        if self.fail:
            raise UpstreamUnavailableError("rpc down", method="getSignaturesForAddress")
        infos = [
            SignatureInfo(signature=sig, slot=tx.slot if tx else 0, block_time=tx.block_time if tx else None)
            for sig, tx in self.txs.items()
        ]
        return infos[:limit]

    async def get_parsed_transactions(self, signatures, *, max_supported_transaction_version=0):
        self.fetched.append(list(signatures))
        results = [self.txs.get(sig) for sig in signatures]
        return results[:-1] if self.short_results else results


class FakeBackend:
    def __init__(self, orders: list[BackendOrder], *, list_fails: bool = False, patch_fails: bool = False) -> None:
        self.orders = orders
        self.list_fails = list_fails
        self.patch_fails = patch_fails
        self.patches: list[tuple[str, ActivityStatus, int]] = []

    async def list_orders(self, address):
        if self.list_fails:
            raise BackendError("backend down", status_code=502)
        return self.orders

    async def patch_order(self, order_id, status, updated_at):
        if self.patch_fails:
            raise BackendError("patch rejected", status_code=409)
        self.patches.append((order_id, status, updated_at))


def _service(settings, chain, store=None, backend=None) -> ActivitySyncService:
    return ActivitySyncService(settings, chain, chain, store or InMemoryStateStore(), backend=backend)


def _run(service: ActivitySyncService, address: str = USER_WALLET):
    async def _go():
        result = await service.run_pass(address)
        await service.drain_patches()
        return result

    return asyncio.run(_go())


def test_first_pass_inserts_classified_activities(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10), "sig-B": _transfer_tx(20, err={"e": 1})})
    store = InMemoryStateStore()
    result = _run(_service(settings, chain, store))
    assert result.listed == 2
    assert result.fetched == 2
    assert result.inserted == 2
    assert result.backend_available is False
    stored = store.load(USER_WALLET)
    assert stored["sig-A"].status is ActivityStatus.CONFIRMED
    assert stored["sig-A"].total_amount_string == "1"
    assert stored["sig-B"].status is ActivityStatus.FAILED


def test_confirmed_signatures_are_not_refetched(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10), "sig-B": _transfer_tx(20, err={"e": 1})})
    service = _service(settings, chain)
    _run(service)
    second = _run(service)
    assert chain.fetched[-1] == ["sig-B"]
    assert second.inserted == 0
    assert second.total == 2


def test_unavailable_transaction_yields_baseline(settings):
    chain = FakeChain({"sig-A": None})
    store = InMemoryStateStore()
    _run(_service(settings, chain, store))
    activity = store.load(USER_WALLET)["sig-A"]
    assert activity.type == "unknown"
    assert activity.updated_at == 0


def test_upstream_failure_commits_nothing(settings):
    store = InMemoryStateStore()
    ok_chain = FakeChain({"sig-A": _transfer_tx(10)})
    _run(_service(settings, ok_chain, store))
    before = store.load(USER_WALLET)

    with pytest.raises(UpstreamUnavailableError):
        _run(_service(settings, FakeChain({}, fail=True), store))
    assert store.load(USER_WALLET) == before


def test_short_transaction_result_aborts_pass(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10), "sig-B": _transfer_tx(20)})
    chain.short_results = True
    store = InMemoryStateStore()
    with pytest.raises(UpstreamUnavailableError):
        _run(_service(settings, chain, store))
    assert store.load(USER_WALLET) == {}


def test_backend_listing_failure_does_not_block_pass(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([], list_fails=True)
    result = _run(_service(settings, chain, backend=backend))
    assert result.backend_available is False
    assert result.inserted == 1


def test_backend_order_confirmed_on_chain_is_patched_once(settings):
    """Backend pending order for sig-A, chain says confirmed: one event and one patch for ord-1."""
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([BackendOrder(id="ord-1", status="submitted", signature="sig-A")])
    store = InMemoryStateStore()
    service = _service(settings, chain, store, backend)
    events = []
    service.events.subscribe(lambda address, change: events.append((address, change)))

    result = _run(service)

    stored = store.load(USER_WALLET)["sig-A"]
    assert stored.id == "ord-1"
    assert stored.status is ActivityStatus.CONFIRMED
    assert result.backend_available is True
    assert len(result.status_changes) == 1
    assert [(a, c.activity_id, c.status) for a, c in events] == [(USER_WALLET, "ord-1", ActivityStatus.CONFIRMED)]
    assert backend.patches == [("ord-1", ActivityStatus.CONFIRMED, stored.updated_at)]


def test_patch_failure_does_not_roll_back(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([BackendOrder(id="ord-1", status="pending", signature="sig-A")], patch_fails=True)
    store = InMemoryStateStore()
    result = _run(_service(settings, chain, store, backend))
    assert len(result.status_changes) == 1
    assert store.load(USER_WALLET)["sig-A"].status is ActivityStatus.CONFIRMED


def test_failing_subscriber_does_not_break_pass(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([BackendOrder(id="ord-1", status="pending", signature="sig-A")])
    service = _service(settings, chain, backend=backend)
    received = []

    def _broken(address, change):
        raise RuntimeError("subscriber bug")

    async def _recording(address, change):
        received.append(change.activity_id)

    service.events.subscribe(_broken)
    service.events.subscribe(_recording)
    _run(service)
    assert received == ["ord-1"]
    assert len(backend.patches) == 1


def test_unsubscribe_stops_delivery(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([BackendOrder(id="ord-1", status="pending", signature="sig-A")])
    service = _service(settings, chain, backend=backend)
    received = []
    unsubscribe = service.events.subscribe(lambda address, change: received.append(change))
    unsubscribe()
    _run(service)
    assert received == []


def test_merged_activities_are_newest_first(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10), "sig-B": _transfer_tx(30), "sig-C": _transfer_tx(20)})
    service = _service(settings, chain)
    _run(service)
    activities = asyncio.run(service.get_merged_activities(USER_WALLET))
    assert [a.signature for a in activities] == ["sig-B", "sig-C", "sig-A"]


def test_addresses_are_isolated(settings):
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    store = InMemoryStateStore()
    service = _service(settings, chain, store)
    _run(service, USER_WALLET)
    assert store.load(OTHER_WALLET) == {}
    assert store.addresses() == [USER_WALLET]


def test_numeric_backend_timestamps_do_not_break_pass(settings):
    """Backends that send epoch-ms timestamps still merge; the on-chain entry gets the order id."""
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    order = BackendOrder.from_api({"id": "ord-1", "status": "pending", "signature": "sig-A", "createdAt": 1_700_000_000_000})
    store = InMemoryStateStore()
    result = _run(_service(settings, chain, store, FakeBackend([order])))
    assert result.backend_available is True
    stored = store.load(USER_WALLET)["sig-A"]
    assert stored.id == "ord-1"
    assert stored.status is ActivityStatus.CONFIRMED


def test_unmappable_backend_orders_count_as_unavailable(settings, monkeypatch):
    """A mapping failure is logged like a backend outage; on-chain data is still committed."""
    from wallet_activity.sync import service as service_module

    def _broken(orders, context):
        raise TypeError("unexpected order shape")

    monkeypatch.setattr(service_module, "orders_to_activities", _broken)
    chain = FakeChain({"sig-A": _transfer_tx(10)})
    backend = FakeBackend([BackendOrder(id="ord-1", status="pending", signature="sig-A")])
    store = InMemoryStateStore()
    result = _run(_service(settings, chain, store, backend))
    assert result.backend_available is False
    assert list(store.load(USER_WALLET)) == ["sig-A"]


def test_backend_driven_change_is_published_but_not_patched(settings):
    """The order reports its own status change: subscribers are told, the order is not patched back."""
    store = InMemoryStateStore()
    chain = FakeChain({})
    backend = FakeBackend([BackendOrder(id="ord-1", status="submitted", signature="sig-A")])
    service = _service(settings, chain, store, backend)
    _run(service)
    assert store.load(USER_WALLET)["sig-A"].id == "ord-1"

    events = []
    service.events.subscribe(lambda address, change: events.append(change))
    backend.orders = [BackendOrder(id="ord-1", status="failed", signature="sig-A")]
    _run(service)

    assert store.load(USER_WALLET)["sig-A"].status is ActivityStatus.FAILED
    assert [(c.activity_id, c.status, c.from_backend) for c in events] == [("ord-1", ActivityStatus.FAILED, True)]
    assert backend.patches == []
