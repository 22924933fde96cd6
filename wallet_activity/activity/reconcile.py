"""
Reconciliation engine: merge activity observations into the keyed collection.

Stateless and pure. Callers pass the previously committed collection for one
address and get back a new collection plus the status changes to publish;
`existing` is never mutated, so a pass abandoned before its store write has
no visible effect.

Merge rules, per incoming activity in arrival order:
- unknown signature: insert as-is (first seen defines identity)
- known, stored record has no backend `id` but the incoming one does: the
  `id` is attached; nothing else is taken from the incoming record
- known, different status: replace status only; every other field of the
  stored record is kept; a StatusChange is emitted whenever the stored
  record carries a backend `id`, flagged from_backend when the observation
  came from that same order (subscribers see it, the order is not patched)
- known, same status: no-op
- known, incoming status would regress the stored one (confirmed -> any,
  failed -> pending): status kept; a backend record lagging this way gets a
  StatusChange re-announcing the stored status so the backend catches up
Entries are never removed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Sequence

from wallet_activity.activity.models import Activity, ActivityStatus, StatusChange
from wallet_activity.solana_listener.models import SignatureInfo


@dataclass
class ReconcileResult:
    activities: dict[str, Activity]
    status_changes: list[StatusChange] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    linked: int = 0


def is_regression(current: ActivityStatus, incoming: ActivityStatus) -> bool:
    """Confirmed is terminal; failed may still turn confirmed but never pending."""
    if current is ActivityStatus.CONFIRMED:
        return True
    return current is ActivityStatus.FAILED and incoming is ActivityStatus.PENDING


def reconcile(
    existing: Mapping[str, Activity],
    incoming: Iterable[Activity],
) -> ReconcileResult:
    """Apply incoming activities to a copy of existing (see module docstring)."""
    merged: dict[str, Activity] = dict(existing)
    result = ReconcileResult(activities=merged)
    for activity in incoming:
        signature = activity.signature
        current = merged.get(signature)
        if current is None:
            merged[signature] = activity
            result.inserted += 1
            continue
        if current.id is None and activity.id is not None:
            current = merged[signature] = replace(current, id=activity.id)
            result.linked += 1
        if activity.status == current.status:
            continue
        if is_regression(current.status, activity.status):
            if activity.id is not None:
                result.status_changes.append(
                    StatusChange(
                        activity_id=activity.id,
                        signature=signature,
                        status=current.status,
                        updated_at=current.updated_at,
                    )
                )
            continue
        updated = merged[signature] = replace(
            current,
            status=activity.status,
            updated_at=max(current.updated_at, activity.updated_at),
        )
        result.updated += 1
        if current.id is not None:
            result.status_changes.append(
                StatusChange(
                    activity_id=current.id,
                    signature=signature,
                    status=updated.status,
                    updated_at=updated.updated_at,
                    from_backend=activity.id == current.id,
                )
            )
    return result


def merge_pass(
    existing: Mapping[str, Activity],
    backend_activities: Sequence[Activity],
    onchain_activities: Sequence[Activity],
) -> ReconcileResult:
    """
    One reconciliation pass: backend records first, then on-chain records.

    Backend records go first so the order `id` is attached before on-chain
    observations of the same signature arrive and update its status.
    """
    first = reconcile(existing, backend_activities)
    second = reconcile(first.activities, onchain_activities)
    return ReconcileResult(
        activities=second.activities,
        status_changes=first.status_changes + second.status_changes,
        inserted=first.inserted + second.inserted,
        updated=first.updated + second.updated,
        linked=first.linked + second.linked,
    )


def select_signatures_to_fetch(
    existing: Mapping[str, Activity],
    signatures: Iterable[SignatureInfo],
) -> list[SignatureInfo]:
    """
    Signatures whose parsed transaction must be (re)fetched.

    Confirmed entries are terminal and skipped. Pending and failed entries are
    re-checked, since the stored status may lag the chain. Duplicate listings
    collapse to the first occurrence; input order is preserved.
    """
    seen: set[str] = set()
    out: list[SignatureInfo] = []
    for info in signatures:
        if info.signature in seen:
            continue
        seen.add(info.signature)
        current = existing.get(info.signature)
        if current is not None and current.status is ActivityStatus.CONFIRMED:
            continue
        out.append(info)
    return out


def sort_activities(activities: Iterable[Activity]) -> list[Activity]:
    """Newest first by updated_at, then slot; ties broken by signature for stability."""

    def _slot(a: Activity) -> int:
        try:
            return int(a.slot)
        except ValueError:
            return -1

    return sorted(
        activities,
        key=lambda a: (a.updated_at, _slot(a), a.signature),
        reverse=True,
    )
