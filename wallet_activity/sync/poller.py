"""
Activity poller: periodic reconciliation passes for a set of addresses.

Every cycle runs one pass per address concurrently; a failing address is
logged and retried next cycle without affecting the others. Runs until
stop(); under `serve` it lives in the API server's lifespan.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable

from wallet_activity.activity_logging import get_logger
from wallet_activity.core.exceptions import ActivitySyncError
from wallet_activity.sync.service import ActivitySyncService, PassResult

logger = get_logger(__name__)


class ActivityPoller:
    def __init__(
        self,
        service: ActivitySyncService,
        addresses: Iterable[str] | Callable[[], Iterable[str]],
        *,
        poll_interval_sec: float = 30.0,
    ) -> None:
        """
        Args:
            service: sync service that runs the passes.
            addresses: fixed addresses, or a callable re-evaluated every cycle
                (e.g. ActivitySyncService.tracked_addresses).
            poll_interval_sec: seconds between the end of one cycle and the next.
        """
        if poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        self._service = service
        if callable(addresses):
            self._addresses = addresses
        else:
            fixed = list(addresses)
            self._addresses = lambda: fixed
        self._poll_interval_sec = poll_interval_sec
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Request shutdown; the loop exits after the current cycle."""
        self._stop_event.set()

    async def run_forever(self) -> None:
        logger.info("poller_started", poll_interval_sec=self._poll_interval_sec)
        while not self._stop_event.is_set():
            await self.poll_once()
            if self._stop_event.is_set():
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_sec)
            except asyncio.TimeoutError:
                pass
        await self._service.drain_patches()
        logger.info("poller_loop_exited")

    async def poll_once(self) -> dict[str, PassResult | None]:
        """One cycle: a pass per address. Failed addresses map to None."""
        try:
            addresses = list(dict.fromkeys(await asyncio.to_thread(self._addresses)))
        except ActivitySyncError as e:
            logger.warning("poller_addresses_unavailable", error=str(e))
            return {}
        results = await asyncio.gather(
            *(self._service.run_pass(address) for address in addresses),
            return_exceptions=True,
        )
        out: dict[str, PassResult | None] = {}
        for address, result in zip(addresses, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, ActivitySyncError):
                    logger.warning("poller_pass_failed", wallet_id=address, error=str(result))
                else:
                    logger.error(
                        "poller_pass_error",
                        wallet_id=address,
                        error=str(result),
                        exc_info=result,
                    )
                out[address] = None
            else:
                out[address] = result
        return out
