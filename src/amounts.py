"""
Checks and formatting shared by everything that handles money, stock
counts and weights.

Money and weights are plain numbers (``int``, ``float`` or ``Decimal``);
stock and cart quantities are whole ``int`` values.  ``bool`` is never
accepted as either, even though it is an ``int`` subclass.

Whole-unit output (receipt amounts, manifest grams) rounds halves away
from zero, the way a ``%.0f`` format does in most languages, instead of
Python's round-half-to-even.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def is_amount(value: Any) -> bool:
    """True for a finite, non-negative number."""
    if isinstance(value, bool):
        return False
    try:
        finite = math.isfinite(value)
    except TypeError:
        return False
    return finite and value >= 0


def is_count(value: Any) -> bool:
    """True for a non-negative ``int`` that is not a ``bool``."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _quantize(value: Any, places: int) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_half_up(value: Any) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(_quantize(value, 0))


def format_fixed(value: Any, places: int = 0) -> str:
    """Format ``value`` with ``places`` decimals, halves away from zero."""
    return str(_quantize(value, places))
