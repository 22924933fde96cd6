"""
Solana JSON-RPC client: signature source and parsed-transaction source.

Wraps getSignaturesForAddress and getTransaction(encoding=jsonParsed) over
httpx with exponential backoff. Transport/RPC failures that survive all
retries raise UpstreamUnavailableError so the reconciliation pass aborts
without committing. A null getTransaction result is not an error: the slot
for that signature is None.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Sequence

import httpx

from wallet_activity.activity_logging import get_logger
from wallet_activity.core.exceptions import UpstreamUnavailableError
from wallet_activity.solana_listener.models import ParsedTransaction, SignatureInfo
from wallet_activity.solana_listener.parser import parse_transaction

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"


class SolanaRpcClient:
    """
    Async JSON-RPC client for one Solana endpoint.

    Pass an httpx.AsyncClient to share a connection pool (or a MockTransport
    in tests); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        request_timeout_sec: float = 15.0,
        max_retries: int = 3,
        min_retry_delay_sec: float = 0.5,
        max_retry_delay_sec: float = 8.0,
        max_concurrent_requests: int = 8,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        self._rpc_url = rpc_url.rstrip("/")
        self._client = client
        self._timeout = request_timeout_sec
        self._max_retries = max_retries
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec
        self._max_concurrent = max_concurrent_requests
        self._commitment = commitment
        self._ids = itertools.count(1)

    async def list_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        """Latest signatures for address, newest first (RPC order preserved)."""
        if not (1 <= limit <= 1000):
            raise ValueError("limit must be between 1 and 1000")
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self._commitment}],
        )
        if not isinstance(result, list):
            raise UpstreamUnavailableError(
                "getSignaturesForAddress returned a non-list result",
                method="getSignaturesForAddress",
            )
        infos: list[SignatureInfo] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("rpc_signature_item_skipped", error=str(e))
        logger.debug("rpc_signatures_listed", signature_count=len(infos))
        return infos

    async def get_parsed_transactions(
        self,
        signatures: Sequence[str],
        *,
        max_supported_transaction_version: int = 0,
    ) -> list[ParsedTransaction | None]:
        """
        Fetch parsed transactions concurrently.

        The returned list is index-aligned with `signatures`: each result is
        written to the slot of the signature that requested it, whatever the
        completion order.
        """
        results: list[ParsedTransaction | None] = [None] * len(signatures)
        if not signatures:
            return results
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _fetch(index: int, signature: str) -> None:
            async with semaphore:
                raw = await self._call(
                    "getTransaction",
                    [
                        signature,
                        {
                            "encoding": "jsonParsed",
                            "commitment": self._commitment,
                            "maxSupportedTransactionVersion": max_supported_transaction_version,
                        },
                    ],
                )
            try:
                results[index] = parse_transaction(raw)
            except (TypeError, ValueError) as e:
                logger.warning("rpc_transaction_malformed", signature=signature, error=str(e))
                raise UpstreamUnavailableError(
                    f"getTransaction returned a malformed result for {signature}: {e}",
                    method="getTransaction",
                ) from e

        await asyncio.gather(*(_fetch(i, sig) for i, sig in enumerate(signatures)))
        return results

    async def _call(self, method: str, params: list[Any]) -> Any:
        """JSON-RPC call with exponential backoff; raises UpstreamUnavailableError after the last attempt."""
        delay = self._min_retry_delay
        last_error: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                return await self._post(method, params)
            except (httpx.HTTPError, ValueError, RuntimeError) as e:
                last_error = e
                logger.warning(
                    "rpc_retry",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    error=str(e),
                )
                if attempt + 1 < self._max_retries:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self._max_retry_delay)
        logger.error("rpc_give_up", method=method, max_retries=self._max_retries, error=str(last_error))
        raise UpstreamUnavailableError(
            f"Solana RPC {method} failed after {self._max_retries} attempts: {last_error}",
            method=method,
        ) from last_error

    async def _post(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        if self._client is not None:
            resp = await self._client.post(self._rpc_url, json=body)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                resp = await client.post(self._rpc_url, json=body)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise RuntimeError(f"Solana RPC returned a non-object response: {type(data).__name__}")
        if "error" in data:
            err = data["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise RuntimeError(f"Solana RPC error: {message} (code={code})")
        return data.get("result")
