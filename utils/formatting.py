# jafpos/utils/formatting.py
from decimal import Decimal, ROUND_HALF_UP

from domain.models import to_decimal

CENTS = Decimal("0.01")


def format_amount(amount) -> str:
    """
    Two-decimal display value. Example: Decimal("349.995") -> "350.00"
    """
    return f"{to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP):.2f}"


def format_currency(amount, symbol: str = "₹") -> str:
    return f"{symbol}{format_amount(amount)}"


def mask_suffix(suffix: str) -> str:
    return f"***{suffix}"
