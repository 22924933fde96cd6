"""
Environment variable loading for Wallet Activity.

- SOLANA_NETWORK: devnet | mainnet (default: mainnet)
- SOLANA_RPC_URL: RPC endpoint
- HELIUS_API_KEY: Helius API key (fallback for RPC URL)
- SOLANA_CHAIN_ID: chain id stamped on every activity
- BLOCK_EXPLORER_URL: explorer template with {signature} and {cluster}
- BACKEND_URL / BACKEND_API_TOKEN: order backend
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is wallet_activity/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
HELIUS_DEVNET_URL_TEMPLATE = "https://devnet.helius-rpc.com/?api-key={key}"

# CAIP-2 style genesis-hash prefixes
MAINNET_CHAIN_ID = "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp"
DEVNET_CHAIN_ID = "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"

DEFAULT_BLOCK_EXPLORER_TEMPLATE = "https://solscan.io/tx/{signature}{cluster}"


def load_activity_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def get_solana_network() -> str:
    """Return SOLANA_NETWORK from env: devnet | mainnet. Default: mainnet."""
    load_activity_env()
    raw = (os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or "mainnet").strip().lower()
    if raw == "devnet":
        return "devnet"
    return "mainnet"


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY (network-specific) > public default.
    """
    load_activity_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    network = get_solana_network()
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        if network == "devnet":
            return HELIUS_DEVNET_URL_TEMPLATE.format(key=key)
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return DEVNET_RPC_URL if network == "devnet" else MAINNET_RPC_URL


def get_chain_id() -> str:
    """Return SOLANA_CHAIN_ID from env, or the default for the current network."""
    load_activity_env()
    chain_id = (os.getenv("SOLANA_CHAIN_ID") or "").strip()
    if chain_id:
        return chain_id
    return DEVNET_CHAIN_ID if get_solana_network() == "devnet" else MAINNET_CHAIN_ID


def get_block_explorer_template() -> str:
    """Explorer URL template; supports {signature}, {cluster} and {chain_id} placeholders."""
    load_activity_env()
    return (os.getenv("BLOCK_EXPLORER_URL") or "").strip() or DEFAULT_BLOCK_EXPLORER_TEMPLATE


def get_backend_url() -> str | None:
    """Base URL of the order backend; None disables backend merge and patching."""
    load_activity_env()
    url = (os.getenv("BACKEND_URL") or "").strip()
    return url.rstrip("/") or None


def get_backend_token() -> str | None:
    load_activity_env()
    return (os.getenv("BACKEND_API_TOKEN") or "").strip() or None


def mask_rpc_url(rpc: str) -> str:
    """Hide API key in an RPC URL before logging it."""
    if "api-key=" in rpc:
        return rpc.split("api-key=")[0] + "api-key=***"
    return rpc
