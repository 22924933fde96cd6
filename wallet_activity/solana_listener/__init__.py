"""
Solana listener package.

JSON-RPC adapter for signature listing and parsed-transaction retrieval,
plus the models and parser that turn jsonParsed payloads into typed input
for the instruction classifier.
"""

from wallet_activity.solana_listener.models import (
    ParsedInstruction,
    ParsedTransaction,
    ParsedTransactionMeta,
    ProgramName,
    SignatureInfo,
    TokenBalance,
)
from wallet_activity.solana_listener.parser import parse_transaction

__all__ = [
    "ParsedInstruction",
    "ParsedTransaction",
    "ParsedTransactionMeta",
    "ProgramName",
    "SignatureInfo",
    "TokenBalance",
    "parse_transaction",
]
