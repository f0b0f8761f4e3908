"""Lenient numeric coercion for remote payloads and stored rows.

Missing or malformed values become 0 rather than raising; the remote
platform sends quantities as strings and occasionally omits them.
"""
import math
from decimal import Decimal, InvalidOperation
from typing import Any


def to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def to_int(value: Any) -> int:
    """Truncate toward zero, like parseInt on a quantity string"""
    return int(to_float(value))


def to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not result.is_finite():
        return Decimal(0)
    return result


def minor_to_major(amount: Any) -> Decimal:
    """Convert an integer amount in minor units (cents) to major units"""
    return (to_decimal(amount) / 100).quantize(Decimal("0.01"))
