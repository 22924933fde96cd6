"""
Data models for Solana listener output.

Signature listing items and the jsonParsed transaction shape the classifier
consumes. All frozen: upstream data is ground truth and never edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"


class ProgramName(str, Enum):
    """Programs the classifier distinguishes; everything else is OTHER."""

    SPL_TOKEN = "spl-token"
    SYSTEM = "system"
    ASSOCIATED_TOKEN = "spl-associated-token-account"
    OTHER = "other"

    @classmethod
    def resolve(cls, program: str | None, program_id: str | None) -> "ProgramName":
        """Map the RPC 'program' label (or, failing that, the program id) to a ProgramName."""
        if program:
            for member in cls:
                if member.value == program:
                    return member
        if program_id in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
            return cls.SPL_TOKEN
        if program_id == SYSTEM_PROGRAM_ID:
            return cls.SYSTEM
        if program_id == ASSOCIATED_TOKEN_PROGRAM_ID:
            return cls.ASSOCIATED_TOKEN
        return cls.OTHER


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields; the unit of work handed from the
    signature source to the reconciliation pass.
    """

    signature: str
    slot: int
    block_time: int | None = None  # Unix seconds; None if not available
    err: Any = None  # None if success; dict/object from RPC if failed
    memo: str | None = None
    confirmation_status: str | None = None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        block_time = item.get("blockTime")
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            block_time=int(block_time) if block_time is not None else None,
            err=item.get("err"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class ParsedInstruction:
    """One top-level instruction; parsed_type/info are empty for unparsed programs."""

    program_id: str
    program: ProgramName
    parsed_type: str | None = None
    info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenBalance:
    """One entry of meta.preTokenBalances / meta.postTokenBalances."""

    account_index: int
    mint: str
    owner: str | None
    amount: str  # raw integer amount as string
    decimals: int


@dataclass(frozen=True)
class ParsedTransactionMeta:
    err: Any
    fee: int
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()


@dataclass(frozen=True)
class ParsedTransaction:
    """
    Parsed transaction as returned by getTransaction(encoding=jsonParsed).

    meta is None when the RPC returned the transaction without status
    metadata; the classifier then yields a baseline record.
    """

    slot: int | None
    block_time: int | None
    instructions: tuple[ParsedInstruction, ...]
    meta: ParsedTransactionMeta | None
    signatures: tuple[str, ...] = ()
