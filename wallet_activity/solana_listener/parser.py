"""
Solana transaction parser: jsonParsed RPC payloads to typed models.

Parses getTransaction(encoding="jsonParsed") results into ParsedTransaction.
Purely structural: instruction payloads are kept as the RPC returned them and
interpreted later by the classifier. Returns None for payloads without a
transaction message.
"""

from __future__ import annotations

from typing import Any

from wallet_activity.activity_logging import get_logger
from wallet_activity.solana_listener.models import (
    ParsedInstruction,
    ParsedTransaction,
    ParsedTransactionMeta,
    ProgramName,
    TokenBalance,
)

logger = get_logger(__name__)


def _parse_instruction(raw: dict[str, Any]) -> ParsedInstruction:
    """One message.instructions entry; parsed may be a dict, a string (memo) or absent."""
    program_id = str(raw.get("programId") or "")
    program = ProgramName.resolve(raw.get("program"), program_id)
    parsed = raw.get("parsed")
    if isinstance(parsed, dict):
        info = parsed.get("info")
        return ParsedInstruction(
            program_id=program_id,
            program=program,
            parsed_type=parsed.get("type"),
            info=info if isinstance(info, dict) else {},
        )
    return ParsedInstruction(program_id=program_id, program=program)


def _parse_token_balances(raw_list: Any) -> tuple[TokenBalance, ...]:
    """Token balances in RPC order; malformed entries are skipped."""
    out: list[TokenBalance] = []
    for raw in raw_list or []:
        if not isinstance(raw, dict):
            continue
        ui = raw.get("uiTokenAmount") or {}
        try:
            out.append(
                TokenBalance(
                    account_index=int(raw.get("accountIndex", 0)),
                    mint=str(raw["mint"]),
                    owner=raw.get("owner"),
                    amount=str(ui.get("amount", "0")),
                    decimals=int(ui.get("decimals", 0)),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("parser_token_balance_skipped", error=str(e))
    return tuple(out)


def _parse_meta(raw: Any) -> ParsedTransactionMeta | None:
    if not isinstance(raw, dict):
        return None
    try:
        fee = int(raw.get("fee") or 0)
    except (TypeError, ValueError):
        fee = 0
    return ParsedTransactionMeta(
        err=raw.get("err"),
        fee=fee,
        pre_token_balances=_parse_token_balances(raw.get("preTokenBalances")),
        post_token_balances=_parse_token_balances(raw.get("postTokenBalances")),
    )


def _optional_int(raw: dict[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{key} is not an integer: {value!r}")
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{key} is not an integer: {value!r}") from e


def parse_transaction(raw: dict[str, Any] | None) -> ParsedTransaction | None:
    """
    Parse a single getTransaction result into a ParsedTransaction.

    Returns None if the payload is null or has no transaction message
    (the caller treats that as "transaction unavailable"). Raises ValueError
    when slot or blockTime is present but not an integer.
    """
    if not isinstance(raw, dict):
        return None
    tx_obj = raw.get("transaction")
    if not isinstance(tx_obj, dict):
        return None
    message = tx_obj.get("message")
    if not isinstance(message, dict):
        return None

    instructions = tuple(
        _parse_instruction(ix)
        for ix in message.get("instructions") or []
        if isinstance(ix, dict)
    )
    return ParsedTransaction(
        slot=_optional_int(raw, "slot"),
        block_time=_optional_int(raw, "blockTime"),
        instructions=instructions,
        meta=_parse_meta(raw.get("meta")),
        signatures=tuple(s for s in tx_obj.get("signatures") or () if isinstance(s, str)),
    )
