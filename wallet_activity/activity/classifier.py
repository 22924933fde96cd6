"""
Instruction classifier: one parsed transaction -> one Activity.

Every transaction gets a baseline record (status, dates, explorer link).
When the transaction has status metadata and one of its 1-3 top-level
instructions is a token/native transfer or burn, the record is enriched with
direction, counterparties and amounts. Missing metadata, unclassifiable
instruction lists and malformed payloads all yield the baseline record; the
classifier never raises for upstream data.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone

from wallet_activity.activity.amounts import format_token_amount
from wallet_activity.activity.instructions import (
    INTERESTING_TYPES,
    InstructionKind,
    SystemTransfer,
    TokenInstruction,
    decode_instruction,
    select_candidate_index,
)
from wallet_activity.activity.models import (
    DEFAULT_DECIMAL,
    Activity,
    ActivityAction,
    ActivityStatus,
)
from wallet_activity.activity_logging import get_logger
from wallet_activity.config.settings import NATIVE_SYMBOL, Settings
from wallet_activity.solana_listener.models import (
    ParsedTransaction,
    ParsedTransactionMeta,
    SignatureInfo,
)

logger = get_logger(__name__)

NATIVE_DECIMALS = 9
UNRESOLVED_CURRENCY = "-"
EPOCH_SENTINEL = 0


@dataclass(frozen=True)
class ClassifierContext:
    """Per-address, per-network inputs to classify()."""

    chain_id: str
    network: str
    block_explorer_template: str
    selected_address: str
    native_symbol: str = NATIVE_SYMBOL

    @classmethod
    def from_settings(cls, settings: Settings, selected_address: str) -> "ClassifierContext":
        return cls(
            chain_id=settings.chain_id,
            network=settings.solana_network,
            block_explorer_template=settings.block_explorer_template,
            selected_address=selected_address,
            native_symbol=settings.native_symbol,
        )


def build_explorer_url(template: str, signature: str, *, network: str, chain_id: str) -> str:
    """Substitute {signature}, {cluster} ("" on mainnet) and {chain_id} into the template."""
    cluster = "" if network == "mainnet" else f"?cluster={network}"
    return template.format(signature=signature, cluster=cluster, chain_id=chain_id)


def block_time_to_dates(block_time: int | None) -> tuple[int, str]:
    """(updated_at epoch-ms, ISO-8601 raw date); unknown block time maps to epoch 0."""
    seconds = block_time if block_time is not None else EPOCH_SENTINEL
    raw_date = datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    return seconds * 1000, raw_date


def baseline_activity(
    tx: ParsedTransaction | None,
    info: SignatureInfo,
    context: ClassifierContext,
) -> Activity:
    """The record every transaction gets before instruction classification."""
    meta = tx.meta if tx is not None else None
    if meta is not None:
        failed = meta.err is not None
    else:
        failed = info.err is not None

    block_time = info.block_time
    if block_time is None and tx is not None:
        block_time = tx.block_time
    if block_time is None:
        logger.debug("classifier_block_time_missing", signature=info.signature)
    updated_at, raw_date = block_time_to_dates(block_time)

    return Activity(
        signature=info.signature,
        slot=str(info.slot),
        status=ActivityStatus.FAILED if failed else ActivityStatus.CONFIRMED,
        updated_at=updated_at,
        block_explorer_url=build_explorer_url(
            context.block_explorer_template,
            info.signature,
            network=context.network,
            chain_id=context.chain_id,
        ),
        chain_id=context.chain_id,
        network=context.network,
        raw_date=raw_date,
        action=ActivityAction.UNKNOWN,
        decimal=DEFAULT_DECIMAL,
        fee=meta.fee if meta is not None else None,
    )


def _action_for(from_address: str | None, selected_address: str) -> ActivityAction:
    return ActivityAction.SEND if from_address == selected_address else ActivityAction.RECEIVE


def _token_decimals(variant: TokenInstruction, mint: str | None, meta: ParsedTransactionMeta) -> int:
    """Decimals from the instruction, else the matching post balance, else the default."""
    if variant.decimals is not None:
        return variant.decimals
    for balance in meta.post_token_balances:
        if balance.mint == mint:
            return balance.decimals
    return DEFAULT_DECIMAL


def _apply_token(
    base: Activity,
    variant: TokenInstruction,
    meta: ParsedTransactionMeta,
    context: ClassifierContext,
) -> Activity:
    source = variant.authority
    post = meta.post_token_balances
    if len(post) <= 1:
        to_address = source
    else:
        to_address = next((b.owner for b in post[:2] if b.owner != source), None)

    if variant.is_burn:
        mint = variant.mint
    else:
        mint = post[0].mint if post else variant.mint
    decimals = _token_decimals(variant, mint, meta)

    return replace(
        base,
        action=_action_for(source, context.selected_address),
        type=variant.parsed_type,
        from_address=source,
        to_address=to_address,
        crypto_amount=variant.amount,
        crypto_currency=UNRESOLVED_CURRENCY,
        decimal=decimals,
        total_amount_string=format_token_amount(variant.amount, decimals),
        mint_address=mint,
    )


def _apply_system(base: Activity, variant: SystemTransfer, context: ClassifierContext) -> Activity:
    return replace(
        base,
        action=_action_for(variant.source, context.selected_address),
        type=variant.parsed_type,
        from_address=variant.source,
        to_address=variant.destination,
        crypto_amount=variant.lamports,
        crypto_currency=context.native_symbol,
        decimal=NATIVE_DECIMALS,
        total_amount_string=format_token_amount(variant.lamports, NATIVE_DECIMALS),
    )


def classify(
    tx: ParsedTransaction | None,
    info: SignatureInfo,
    context: ClassifierContext,
) -> Activity:
    """Turn one parsed transaction and its signature info into one Activity."""
    base = baseline_activity(tx, info, context)
    if tx is None or tx.meta is None:
        return base

    index = select_candidate_index(tx.instructions)
    if index is None:
        return base
    candidate = tx.instructions[index]
    if candidate.parsed_type not in INTERESTING_TYPES:
        return base

    variant = decode_instruction(candidate)
    if variant.kind is InstructionKind.UNKNOWN:
        logger.debug(
            "classifier_instruction_unknown",
            signature=info.signature,
            program=candidate.program.value,
            parsed_type=candidate.parsed_type,
        )
        return base
    try:
        if isinstance(variant, TokenInstruction):
            return _apply_token(base, variant, tx.meta, context)
        return _apply_system(base, variant, context)
    except ValueError as e:
        logger.debug("classifier_amount_invalid", signature=info.signature, error=str(e))
        return base
