"""
Pytest tests for the state stores (SQLite via SQLAlchemy, and in-memory).
"""

from __future__ import annotations

from dataclasses import replace

from wallet_activity.activity.models import Activity, ActivityAction, ActivityStatus
from wallet_activity.database import InMemoryStateStore, SqlStateStore

USER_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_WALLET = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def _activity(signature: str, status: ActivityStatus = ActivityStatus.PENDING, **kw) -> Activity:
    fields = dict(
        signature=signature,
        slot="123",
        status=status,
        updated_at=1_700_000_000_000,
        block_explorer_url=f"https://solscan.io/tx/{signature}",
        chain_id="solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp",
        network="mainnet",
        raw_date="2023-11-14T22:13:20+00:00",
        action=ActivityAction.SEND,
        type="transferChecked",
        from_address=USER_WALLET,
        to_address=OTHER_WALLET,
        crypto_amount="1500000",
        crypto_currency="-",
        decimal=6,
        total_amount_string="1.5",
        fee=5000,
    )
    fields.update(kw)
    return Activity(**fields)


def _sql_store(tmp_path) -> SqlStateStore:
    store = SqlStateStore(f"sqlite:///{tmp_path / 'activity.db'}")
    store.init_db()
    return store


def test_sql_store_round_trip(tmp_path):
    store = _sql_store(tmp_path)
    activities = {
        "sig-A": _activity("sig-A", id="ord-1"),
        "sig-B": _activity("sig-B", ActivityStatus.CONFIRMED, crypto_amount=42, crypto_currency="SOL"),
    }
    store.save(USER_WALLET, activities)
    assert store.load(USER_WALLET) == activities


def test_sql_store_updates_in_place(tmp_path):
    store = _sql_store(tmp_path)
    store.save(USER_WALLET, {"sig-A": _activity("sig-A")})
    confirmed = replace(_activity("sig-A"), status=ActivityStatus.CONFIRMED, id="ord-9")
    store.save(USER_WALLET, {"sig-A": confirmed, "sig-B": _activity("sig-B")})

    loaded = store.load(USER_WALLET)
    assert loaded["sig-A"].status is ActivityStatus.CONFIRMED
    assert loaded["sig-A"].id == "ord-9"
    assert set(loaded) == {"sig-A", "sig-B"}


def test_sql_store_survives_reopen(tmp_path):
    _sql_store(tmp_path).save(USER_WALLET, {"sig-A": _activity("sig-A")})
    reopened = _sql_store(tmp_path)
    assert list(reopened.load(USER_WALLET)) == ["sig-A"]


def test_sql_store_isolates_addresses(tmp_path):
    store = _sql_store(tmp_path)
    store.save(USER_WALLET, {"sig-A": _activity("sig-A")})
    store.save(OTHER_WALLET, {"sig-A": _activity("sig-A", from_address=OTHER_WALLET)})
    assert store.load(USER_WALLET)["sig-A"].from_address == USER_WALLET
    assert store.load(OTHER_WALLET)["sig-A"].from_address == OTHER_WALLET
    assert store.addresses() == sorted([USER_WALLET, OTHER_WALLET])
    assert store.load("unknown") == {}


def test_unknown_persisted_keys_are_preserved():
    data = dict(_activity("sig-A").to_dict(), legacyField="kept")
    activity = Activity.from_dict(data)
    assert activity.extra == {"legacyField": "kept"}
    assert activity.to_dict()["legacyField"] == "kept"
    assert activity.to_dict()["from"] == USER_WALLET


def test_memory_store_returns_copies():
    store = InMemoryStateStore()
    store.save(USER_WALLET, {"sig-A": _activity("sig-A")})
    loaded = store.load(USER_WALLET)
    loaded["sig-B"] = _activity("sig-B")
    assert list(store.load(USER_WALLET)) == ["sig-A"]
