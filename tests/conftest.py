"""
Pytest fixtures for Wallet Activity tests.

Settings and classifier context are built directly (no env, no .env) so tests
never touch a real RPC endpoint, backend or database.
"""

from __future__ import annotations

import pytest

from wallet_activity.activity.classifier import ClassifierContext
from wallet_activity.config.env import DEFAULT_BLOCK_EXPLORER_TEMPLATE, MAINNET_CHAIN_ID
from wallet_activity.config.settings import Settings, get_settings

# Valid Solana pubkeys (base58, 32 bytes)
USER_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        solana_network="mainnet",
        solana_rpc_url="https://rpc.test",
        chain_id=MAINNET_CHAIN_ID,
        block_explorer_template=DEFAULT_BLOCK_EXPLORER_TEMPLATE,
        signatures_limit=10,
    )


@pytest.fixture
def context(settings) -> ClassifierContext:
    return ClassifierContext.from_settings(settings, USER_WALLET)


@pytest.fixture
def clean_settings_cache():
    """Clear the cached Settings before and after a test that edits env vars."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
