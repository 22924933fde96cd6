"""
Pytest tests for fixed-point amount formatting.
"""

from __future__ import annotations

import pytest

from wallet_activity.activity.amounts import format_token_amount


def test_checked_transfer_amount_is_exact():
    """1500000 raw units at 6 decimals is exactly 1.5."""
    assert format_token_amount("1500000", 6) == "1.5"


def test_whole_and_zero_amounts():
    assert format_token_amount("1", 0) == "1"
    assert format_token_amount(1_000_000_000, 0) == "1000000000"
    assert format_token_amount("0", 6) == "0"
    assert format_token_amount(1_000_000_000, 9) == "1"


def test_large_u64_amount_keeps_every_digit():
    """u64 max at 9 decimals would lose digits as a float."""
    assert format_token_amount("18446744073709551615", 9) == "18446744073.709551615"


def test_small_fraction_not_scientific():
    assert format_token_amount("1", 9) == "0.000000001"


def test_invalid_input_raises_value_error():
    with pytest.raises(ValueError, match="not an integer"):
        format_token_amount("1.5", 6)
    with pytest.raises(ValueError, match="not an integer"):
        format_token_amount("abc", 6)
    with pytest.raises(ValueError, match="decimals"):
        format_token_amount("10", -1)


def test_decimals_outside_u8_raise_value_error():
    """SPL decimals are a u8; larger values are rejected instead of overflowing the scale."""
    assert format_token_amount("1", 255).startswith("0.")
    with pytest.raises(ValueError, match="decimals"):
        format_token_amount("1", 256)
    with pytest.raises(ValueError, match="decimals"):
        format_token_amount("1", 10**7)


def test_amounts_beyond_u64_raise_value_error():
    """Over-long amounts are rejected, never rounded."""
    with pytest.raises(ValueError, match="u64"):
        format_token_amount("18446744073709551616", 0)
    with pytest.raises(ValueError, match="u64"):
        format_token_amount("1" * 70, 6)
    with pytest.raises(ValueError, match="u64"):
        format_token_amount("-5", 0)
