"""
Activity engine: instruction classifier and reconciliation/merge engine.

classify() turns one parsed transaction into an Activity; reconcile() and
merge_pass() fold activities into the signature-keyed collection.
"""

from wallet_activity.activity.classifier import ClassifierContext, classify
from wallet_activity.activity.models import (
    Activity,
    ActivityAction,
    ActivityStatus,
    StatusChange,
)
from wallet_activity.activity.reconcile import (
    ReconcileResult,
    merge_pass,
    reconcile,
    select_signatures_to_fetch,
    sort_activities,
)

__all__ = [
    "Activity",
    "ActivityAction",
    "ActivityStatus",
    "ClassifierContext",
    "ReconcileResult",
    "StatusChange",
    "classify",
    "merge_pass",
    "reconcile",
    "select_signatures_to_fetch",
    "sort_activities",
]
