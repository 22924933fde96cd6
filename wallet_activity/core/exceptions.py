"""
Application-level exceptions.

One base class so callers (poller, API server) can catch every failure of a
reconciliation pass in one place, with narrower classes per collaborator.
"""

from __future__ import annotations


class ActivitySyncError(Exception):
    """Base class for wallet activity failures."""


class ConfigurationError(ActivitySyncError):
    """Invalid or missing configuration value."""


class UpstreamUnavailableError(ActivitySyncError):
    """
    Signature listing or transaction fetch failed or timed out.

    Aborts the whole reconciliation pass; nothing is committed.
    """

    def __init__(self, message: str, *, method: str | None = None) -> None:
        super().__init__(message)
        self.method = method


class BackendError(ActivitySyncError):
    """Backend order list/patch failed. Logged and swallowed by the sync service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StateStoreError(ActivitySyncError):
    """Reading or writing the persisted activity collection failed."""
