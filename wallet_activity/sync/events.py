"""
Status-change event stream.

Subscribers (UI push, audit log, ...) receive every StatusChange committed by
a reconciliation pass. Callbacks may be sync or async; a failing subscriber
is logged and does not affect the others or the pass.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Union

from wallet_activity.activity.models import StatusChange
from wallet_activity.activity_logging import get_logger

logger = get_logger(__name__)

StatusCallback = Union[
    Callable[[str, StatusChange], Awaitable[None]],
    Callable[[str, StatusChange], None],
]


class StatusEventBus:
    def __init__(self) -> None:
        self._subscribers: list[StatusCallback] = []

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """Register callback(address, change); returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def publish(self, address: str, change: StatusChange) -> None:
        for callback in list(self._subscribers):
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(address, change)
                else:
                    callback(address, change)
            except Exception as e:
                logger.exception(
                    "status_subscriber_failed",
                    wallet_id=address,
                    activity_id=change.activity_id,
                    error=str(e),
                )
