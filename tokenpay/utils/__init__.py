"""TokenPay Utility Functions."""

from tokenpay.utils.amount import format_amount, quantize_money, to_minor_units
from tokenpay.utils.helpers import utc_now

__all__ = [
    "format_amount",
    "quantize_money",
    "to_minor_units",
    "utc_now",
]
