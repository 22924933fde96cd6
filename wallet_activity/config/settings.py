"""
Application settings.

Typed, frozen view over the environment (see config.env) used by the RPC
client, backend client, state store, poller and API server. get_settings()
caches the first successful load; tests call get_settings.cache_clear().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from wallet_activity.config import env
from wallet_activity.core.exceptions import ConfigurationError

NATIVE_SYMBOL = "SOL"
DEFAULT_SIGNATURES_LIMIT = 20
DEFAULT_MAX_CONCURRENT_FETCHES = 8
DEFAULT_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_POLL_INTERVAL_SEC = 30.0
DEFAULT_DATABASE_URL = "sqlite:///wallet_activity.db"


@dataclass(frozen=True)
class Settings:
    """Resolved service configuration."""

    solana_network: str
    solana_rpc_url: str
    chain_id: str
    block_explorer_template: str
    native_symbol: str = NATIVE_SYMBOL
    signatures_limit: int = DEFAULT_SIGNATURES_LIMIT
    max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    max_retries: int = DEFAULT_MAX_RETRIES
    backend_url: str | None = None
    backend_token: str | None = None
    database_url: str = DEFAULT_DATABASE_URL
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    api_host: str = "0.0.0.0"
    api_port: int = 8000


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum or (maximum is not None and value > maximum):
        raise ConfigurationError(f"{name} out of range: {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive")
    return value


def _database_url() -> str:
    url = (os.getenv("ACTIVITY_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("ACTIVITY_DB_PATH") or "").strip()
    return f"sqlite:///{path}" if path else DEFAULT_DATABASE_URL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings.

    Raises ConfigurationError when a numeric variable cannot be parsed.
    """
    env.load_activity_env()
    return Settings(
        solana_network=env.get_solana_network(),
        solana_rpc_url=env.get_solana_rpc_url(),
        chain_id=env.get_chain_id(),
        block_explorer_template=env.get_block_explorer_template(),
        native_symbol=(os.getenv("NATIVE_SYMBOL") or NATIVE_SYMBOL).strip(),
        signatures_limit=_env_int("SIGNATURES_LIMIT", DEFAULT_SIGNATURES_LIMIT, maximum=1000),
        max_concurrent_fetches=_env_int("MAX_CONCURRENT_FETCHES", DEFAULT_MAX_CONCURRENT_FETCHES),
        request_timeout_sec=_env_float("RPC_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        max_retries=_env_int("RPC_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        backend_url=env.get_backend_url(),
        backend_token=env.get_backend_token(),
        database_url=_database_url(),
        poll_interval_sec=_env_float("POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_env_int("API_PORT", 8000, maximum=65535),
    )
