"""Money arithmetic helpers.

All amounts are ``Decimal``. Binary floats never touch prices.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# Decimal places of the smallest unit the payment provider accepts
CURRENCY_EXPONENTS: dict[str, int] = {
    "INR": 2,
    "USD": 2,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "INR": "₹",
    "USD": "$",
}


def quantize_money(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half-up.

    Example: 316.6416 -> 316.64, 0.005 -> 0.01
    """
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert an amount to the provider's smallest currency unit.

    Example: to_minor_units(Decimal("10384.00"), "INR") -> 1038400 (paise)

    Raises:
        ValueError: If the amount is negative
    """
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    exponent = CURRENCY_EXPONENTS.get(currency.upper(), 2)
    scaled = (Decimal(amount) * (Decimal(10) ** exponent)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(scaled)


def format_amount(amount: Decimal, currency: str) -> str:
    """Format an amount with its currency symbol, e.g. ``₹10384.00``."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    return f"{symbol}{quantize_money(amount)}"
