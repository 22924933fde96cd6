"""
Backend order -> Activity mapping.

Orders are transaction intents recorded by the application's own backend.
They carry the order `id` that on-chain discovery cannot produce. Orders with
no signature yet cannot be keyed and are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from wallet_activity.activity.amounts import format_token_amount
from wallet_activity.activity.classifier import ClassifierContext, build_explorer_url
from wallet_activity.activity.models import (
    DEFAULT_DECIMAL,
    UNKNOWN_TYPE,
    Activity,
    ActivityAction,
    ActivityStatus,
)
from wallet_activity.activity_logging import get_logger

logger = get_logger(__name__)

_STATUS_MAP = {
    "submitted": ActivityStatus.PENDING,
    "pending": ActivityStatus.PENDING,
    "processing": ActivityStatus.PENDING,
    "confirmed": ActivityStatus.CONFIRMED,
    "success": ActivityStatus.CONFIRMED,
    "completed": ActivityStatus.CONFIRMED,
    "finalized": ActivityStatus.CONFIRMED,
    "failed": ActivityStatus.FAILED,
    "rejected": ActivityStatus.FAILED,
    "cancelled": ActivityStatus.FAILED,
    "expired": ActivityStatus.FAILED,
}

# Numeric timestamps at or above this are epoch milliseconds
_EPOCH_MS_THRESHOLD = 1_000_000_000_000


@dataclass(frozen=True)
class BackendOrder:
    """External order record as returned by GET /orders."""

    id: str
    status: str
    signature: str | None = None
    created_at: str | int | float | None = None
    updated_at: str | int | float | None = None
    """ISO-8601 strings or numeric epochs (seconds or ms)."""
    from_address: str | None = None
    to_address: str | None = None
    amount: str | None = None
    currency: str | None = None
    decimals: int | None = None
    mint: str | None = None
    type: str | None = None
    slot: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "BackendOrder":
        """Build from one API item (camelCase keys). Raises KeyError without id/status."""
        decimals = item.get("decimals")
        slot = item.get("slot")
        amount = item.get("amount")
        return cls(
            id=str(item["id"]),
            status=str(item["status"]),
            signature=item.get("signature") or None,
            created_at=item.get("createdAt"),
            updated_at=item.get("updatedAt"),
            from_address=item.get("from"),
            to_address=item.get("to"),
            amount=str(amount) if amount is not None else None,
            currency=item.get("currency"),
            decimals=int(decimals) if decimals is not None else None,
            mint=item.get("mint"),
            type=item.get("type"),
            slot=int(slot) if slot is not None else None,
            raw=item,
        )


def map_order_status(status: str) -> ActivityStatus:
    """Backend status vocabulary -> ActivityStatus; unknown values count as pending."""
    return _STATUS_MAP.get((status or "").strip().lower(), ActivityStatus.PENDING)


def _parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 string or numeric epoch (seconds or milliseconds); anything else is None."""
    if isinstance(value, bool) or value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def order_to_activity(order: BackendOrder, context: ClassifierContext) -> Activity | None:
    """Map one order to an Activity keyed by its signature; None when unsigned."""
    if not order.signature:
        return None
    when = _parse_timestamp(order.updated_at) or _parse_timestamp(order.created_at)
    if when is None:
        when = datetime.fromtimestamp(0, tz=timezone.utc)

    decimals = order.decimals if order.decimals is not None else DEFAULT_DECIMAL
    total: str | None = None
    if order.amount is not None:
        try:
            total = format_token_amount(order.amount, decimals)
        except ValueError:
            logger.debug("backend_order_amount_invalid", order_id=order.id, amount=order.amount)

    if order.from_address is None:
        action = ActivityAction.UNKNOWN
    elif order.from_address == context.selected_address:
        action = ActivityAction.SEND
    else:
        action = ActivityAction.RECEIVE

    return Activity(
        signature=order.signature,
        slot=str(order.slot) if order.slot is not None else "",
        status=map_order_status(order.status),
        updated_at=int(when.timestamp() * 1000),
        block_explorer_url=build_explorer_url(
            context.block_explorer_template,
            order.signature,
            network=context.network,
            chain_id=context.chain_id,
        ),
        chain_id=context.chain_id,
        network=context.network,
        raw_date=when.isoformat(),
        action=action,
        type=order.type or UNKNOWN_TYPE,
        from_address=order.from_address,
        to_address=order.to_address,
        crypto_amount=order.amount,
        crypto_currency=order.currency,
        decimal=decimals,
        total_amount_string=total,
        mint_address=order.mint,
        id=order.id,
    )


def orders_to_activities(orders: list[BackendOrder], context: ClassifierContext) -> list[Activity]:
    """Map orders in order, skipping unsigned ones."""
    out: list[Activity] = []
    for order in orders:
        activity = order_to_activity(order, context)
        if activity is None:
            logger.debug("backend_order_unsigned_skipped", order_id=order.id)
            continue
        out.append(activity)
    return out
