"""
Data models for wallet activity.

Activity is the user-facing record of one transaction's effect on a tracked
address; signature is its key. Serialised with camelCase keys for the state
store and the HTTP API.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ActivityStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ActivityAction(str, Enum):
    SEND = "send"
    RECEIVE = "receive"
    UNKNOWN = "unknown"


UNKNOWN_TYPE = "unknown"
DEFAULT_DECIMAL = 9

# Python attribute -> persisted/API key
_FIELD_TO_KEY = {
    "signature": "signature",
    "slot": "slot",
    "status": "status",
    "updated_at": "updatedAt",
    "block_explorer_url": "blockExplorerUrl",
    "chain_id": "chainId",
    "network": "network",
    "raw_date": "rawDate",
    "action": "action",
    "type": "type",
    "from_address": "from",
    "to_address": "to",
    "crypto_amount": "cryptoAmount",
    "crypto_currency": "cryptoCurrency",
    "decimal": "decimal",
    "total_amount_string": "totalAmountString",
    "mint_address": "mintAddress",
    "fee": "fee",
    "id": "id",
}
_KEY_TO_FIELD = {v: k for k, v in _FIELD_TO_KEY.items()}


@dataclass(frozen=True)
class Activity:
    """
    One transaction on the activity timeline.

    id is only set for records that came from the backend order feed; it is
    what lets later status changes be patched back to the backend.
    """

    signature: str
    slot: str
    status: ActivityStatus
    updated_at: int
    """Epoch milliseconds (0 when the block time was unknown)."""
    block_explorer_url: str
    chain_id: str
    network: str
    raw_date: str
    """ISO-8601 date derived from the same block time as updated_at."""
    action: ActivityAction = ActivityAction.UNKNOWN
    type: str = UNKNOWN_TYPE
    from_address: str | None = None
    to_address: str | None = None
    crypto_amount: str | int | None = None
    crypto_currency: str | None = None
    decimal: int = DEFAULT_DECIMAL
    total_amount_string: str | None = None
    mint_address: str | None = None
    fee: int | None = None
    id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)
    """Unknown keys carried through from persisted records."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict with camelCase keys."""
        raw = asdict(self)
        extra = raw.pop("extra") or {}
        out: dict[str, Any] = {_FIELD_TO_KEY[k]: v for k, v in raw.items()}
        out["status"] = self.status.value
        out["action"] = self.action.value
        for key, value in extra.items():
            out.setdefault(key, value)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        """Inverse of to_dict; unknown keys land in extra."""
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_TO_FIELD.get(key)
            if name is None:
                extra[key] = value
            else:
                kwargs[name] = value
        kwargs["status"] = ActivityStatus(kwargs["status"])
        kwargs["action"] = ActivityAction(kwargs.get("action") or ActivityAction.UNKNOWN.value)
        kwargs["slot"] = str(kwargs.get("slot", ""))
        kwargs["updated_at"] = int(kwargs.get("updated_at") or 0)
        kwargs.setdefault("block_explorer_url", "")
        kwargs.setdefault("chain_id", "")
        kwargs.setdefault("network", "")
        kwargs.setdefault("raw_date", "")
        if kwargs.get("decimal") is None:
            kwargs["decimal"] = DEFAULT_DECIMAL
        kwargs["extra"] = extra
        return cls(**kwargs)


@dataclass(frozen=True)
class StatusChange:
    """Emitted when a backend-linked activity changes status during a merge."""

    activity_id: str
    signature: str
    status: ActivityStatus
    updated_at: int
    from_backend: bool = False
    """True when the backend order itself reported this status; it is not patched back."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "activityId": self.activity_id,
            "signature": self.signature,
            "status": self.status.value,
            "updatedAt": self.updated_at,
        }
