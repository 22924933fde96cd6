"""Fixed-point amount formatting (raw integer units -> decimal string)."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

# Enough digits for any u64 amount at any decimals value SPL allows
_PRECISION = 60
U64_MAX = 2**64 - 1
MAX_DECIMALS = 255


def format_token_amount(amount: str | int, decimals: int) -> str:
    """
    Render amount / 10**decimals as a plain decimal string without float rounding.

    format_token_amount("1500000", 6) == "1.5"; trailing zeros are dropped and
    scientific notation is never produced. Raises ValueError on non-integer
    input, amounts outside u64, or decimals outside 0..255.
    """
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")
    try:
        raw = int(str(amount).strip())
    except (ValueError, TypeError) as e:
        raise ValueError(f"amount is not an integer: {amount!r}") from e
    if not 0 <= raw <= U64_MAX:
        raise ValueError(f"amount out of u64 range: {amount!r}")
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            value = Decimal(raw).scaleb(-decimals).normalize()
    except InvalidOperation as e:
        raise ValueError(f"cannot scale {amount!r} by 10**-{decimals}") from e
    return format(value, "f")
