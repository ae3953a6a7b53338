"""Integer arithmetic utilities for cents-based balances.

All prices, amounts and balances are int cents inside the engine.
Decimals with at most two fraction digits are accepted at the API edge only.
"""

from decimal import Decimal, InvalidOperation

from config.settings import settings
from src.bw_common.errors import InvalidAmountError

_CENT = Decimal("0.01")


def to_cents(amount: Decimal | int | str) -> int:
    """Convert a decimal money amount to int cents: Decimal('12.50') -> 1250.

    Raises InvalidAmountError when more than two fraction digits are given.
    """
    try:
        value = Decimal(str(amount))
        exact = value.is_finite() and value == value.quantize(_CENT)
    except (InvalidOperation, ValueError):
        exact = False
    if not exact:
        raise InvalidAmountError(f"Invalid money amount: {amount!r}")
    return int(value * 100)


def require_positive(cents: int) -> int:
    """Amounts entering a transfer or purchase must be > 0."""
    if cents <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {cents} cents")
    return cents


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '65.00 MAD', -1200 -> '-12.00 MAD'."""
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    return f"{sign}{abs_cents // 100:,}.{abs_cents % 100:02d} {settings.CURRENCY_CODE}"
