"""
Reconciliation passes: the sync service that wires listener, classifier,
backend and store together, the status-change event bus, and the poller
that runs passes periodically.
"""

from wallet_activity.sync.events import StatusEventBus
from wallet_activity.sync.service import ActivitySyncService, PassResult

__all__ = ["ActivitySyncService", "PassResult", "StatusEventBus"]
