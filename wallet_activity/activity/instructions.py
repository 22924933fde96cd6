"""
Instruction decoding and candidate selection.

Each instruction's duck-typed jsonParsed payload is decoded once into a
tagged variant; the classifier switches on InstructionKind and never looks
at raw `info` again. A recognised parsed type whose `info` is missing
required fields decodes to UnknownInstruction instead of raising.

Candidate selection is a small heuristic over 1-3 top-level instructions:

    [ata:create, spl:transfer]   -> the transfer (NFT / token receive)
    [spl:approve, spl:burn]      -> the burn
    [x]                          -> x

Anything longer is left unclassified. This misclassifies transactions that
carry extra unrelated instructions; that is a known limitation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence, Union

from wallet_activity.activity.amounts import MAX_DECIMALS, U64_MAX
from wallet_activity.solana_listener.models import ParsedInstruction, ProgramName

TRANSFER_TYPES = frozenset({"transfer", "transferChecked"})
BURN_TYPES = frozenset({"burn", "burnChecked"})
INTERESTING_TYPES = TRANSFER_TYPES | BURN_TYPES
MAX_CLASSIFIABLE_INSTRUCTIONS = 3


class InstructionKind(str, Enum):
    SPL_TRANSFER = "spl_transfer"
    SPL_TRANSFER_CHECKED = "spl_transfer_checked"
    SPL_BURN = "spl_burn"
    SPL_BURN_CHECKED = "spl_burn_checked"
    SYSTEM_TRANSFER = "system_transfer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TokenInstruction:
    """spl-token transfer / transferChecked / burn / burnChecked."""

    kind: InstructionKind
    parsed_type: str
    authority: str
    amount: str
    decimals: int | None
    """None for unchecked variants that carry no decimals in info."""
    mint: str | None

    @property
    def is_burn(self) -> bool:
        return self.kind in (InstructionKind.SPL_BURN, InstructionKind.SPL_BURN_CHECKED)


@dataclass(frozen=True)
class SystemTransfer:
    source: str
    destination: str
    lamports: int
    kind: InstructionKind = InstructionKind.SYSTEM_TRANSFER
    parsed_type: str = "transfer"


@dataclass(frozen=True)
class UnknownInstruction:
    parsed_type: str | None = None
    kind: InstructionKind = InstructionKind.UNKNOWN


DecodedInstruction = Union[TokenInstruction, SystemTransfer, UnknownInstruction]

_TOKEN_KINDS = {
    "transfer": InstructionKind.SPL_TRANSFER,
    "transferChecked": InstructionKind.SPL_TRANSFER_CHECKED,
    "burn": InstructionKind.SPL_BURN,
    "burnChecked": InstructionKind.SPL_BURN_CHECKED,
}
_CHECKED_KINDS = (InstructionKind.SPL_TRANSFER_CHECKED, InstructionKind.SPL_BURN_CHECKED)
_BURN_KINDS = (InstructionKind.SPL_BURN, InstructionKind.SPL_BURN_CHECKED)


def _int_string(value: Any) -> str | None:
    """Raw u64 amount as a canonical string, or None if not an integer in range."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = int(str(value).strip())
    except ValueError:
        return None
    if not 0 <= amount <= U64_MAX:
        return None
    return str(amount)


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _decode_token(ix: ParsedInstruction) -> DecodedInstruction:
    kind = _TOKEN_KINDS.get(ix.parsed_type or "")
    if kind is None:
        return UnknownInstruction(ix.parsed_type)
    info = ix.info
    authority = info.get("authority")
    if not isinstance(authority, str) or not authority:
        return UnknownInstruction(ix.parsed_type)

    # Checked variants nest amount/decimals under tokenAmount; unchecked keep them flat.
    if kind in _CHECKED_KINDS:
        token_amount = info.get("tokenAmount")
        if not isinstance(token_amount, dict):
            return UnknownInstruction(ix.parsed_type)
        amount = _int_string(token_amount.get("amount"))
        decimals = _int_or_none(token_amount.get("decimals"))
        if decimals is None:
            return UnknownInstruction(ix.parsed_type)
    else:
        amount = _int_string(info.get("amount"))
        decimals = _int_or_none(info.get("decimals"))
    if amount is None or (decimals is not None and not 0 <= decimals <= MAX_DECIMALS):
        return UnknownInstruction(ix.parsed_type)

    mint = info.get("mint") if isinstance(info.get("mint"), str) else None
    if kind in _BURN_KINDS and mint is None:
        return UnknownInstruction(ix.parsed_type)
    return TokenInstruction(
        kind=kind,
        parsed_type=ix.parsed_type or "",
        authority=authority,
        amount=amount,
        decimals=decimals,
        mint=mint,
    )


def _decode_system(ix: ParsedInstruction) -> DecodedInstruction:
    if ix.parsed_type != "transfer":
        return UnknownInstruction(ix.parsed_type)
    source = ix.info.get("source")
    destination = ix.info.get("destination")
    lamports = _int_or_none(ix.info.get("lamports"))
    if lamports is not None and not 0 <= lamports <= U64_MAX:
        lamports = None
    if not isinstance(source, str) or not isinstance(destination, str) or lamports is None:
        return UnknownInstruction(ix.parsed_type)
    return SystemTransfer(source=source, destination=destination, lamports=lamports)


def decode_instruction(ix: ParsedInstruction) -> DecodedInstruction:
    """Decode one parsed instruction into its variant. Never raises."""
    if ix.program is ProgramName.SPL_TOKEN:
        return _decode_token(ix)
    if ix.program is ProgramName.SYSTEM:
        return _decode_system(ix)
    return UnknownInstruction(ix.parsed_type)


# --- named search predicates (first match wins) ---


def is_associated_token_create(ix: ParsedInstruction) -> bool:
    return ix.program is ProgramName.ASSOCIATED_TOKEN and ix.parsed_type == "create"


def is_transfer(ix: ParsedInstruction) -> bool:
    return ix.parsed_type in TRANSFER_TYPES


def is_burn(ix: ParsedInstruction) -> bool:
    return ix.parsed_type in BURN_TYPES


def find_first(
    instructions: Sequence[ParsedInstruction],
    predicate: Callable[[ParsedInstruction], bool],
) -> int | None:
    """Index of the first instruction matching predicate, or None."""
    for i, ix in enumerate(instructions):
        if predicate(ix):
            return i
    return None


def select_candidate_index(instructions: Sequence[ParsedInstruction]) -> int | None:
    """
    Index of the one "interesting" instruction, or None (unclassified).

    A single instruction is always the candidate. For 2-3 instructions an
    associated-token create selects the first transfer, otherwise the first
    burn is selected.
    """
    n = len(instructions)
    if n == 1:
        return 0
    if not (1 < n <= MAX_CLASSIFIABLE_INSTRUCTIONS):
        return None
    if find_first(instructions, is_associated_token_create) is not None:
        return find_first(instructions, is_transfer)
    return find_first(instructions, is_burn)
