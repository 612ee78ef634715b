"""
Mathematical utilities for trading calculations.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Optional, Union


def safe_decimal(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Convert a venue value to Decimal, None when it is missing or malformed"""
    if value is None:
        return None
    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def round_down(value: Decimal, decimals: int) -> Decimal:
    """Round down to specified decimal places"""
    if decimals <= 0:
        return value.quantize(Decimal("1"), rounding=ROUND_DOWN)

    quantizer = Decimal("0.1") ** decimals
    return value.quantize(quantizer, rounding=ROUND_DOWN)


def usd_to_base_amount(size_usd: Decimal, price: Decimal) -> Decimal:
    """Convert a USD notional to a base-asset amount at ``price``"""
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    return size_usd / price
