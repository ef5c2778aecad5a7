"""Fixed-point arithmetic on 18-decimal integers.

Prices, exchange rates and fractions are carried as plain ``int`` values
scaled by ``FIX_ONE`` so that they round exactly the way the on-chain
contracts do. Every multiplication or division takes an explicit rounding
mode.

.. code-block:: python

    >>> to_fix("1.05")
    1050000000000000000
    >>> mul_fix(to_fix("1.05"), to_fix("0.9"), RoundingMode.FLOOR)
    945000000000000000
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from enum import Enum

FIX_DECIMALS = 18
FIX_ONE = 10**FIX_DECIMALS


class RoundingMode(Enum):
    """Rounding applied to the last digit of a fixed-point result."""

    FLOOR = "floor"
    ROUND = "round"
    CEIL = "ceil"


def _divrnd(numerator: int, denominator: int, rounding: RoundingMode) -> int:
    if denominator == 0:
        raise ZeroDivisionError("fixed-point division by zero")
    quotient, remainder = divmod(numerator, denominator)
    if rounding is RoundingMode.FLOOR or remainder == 0:
        return quotient
    if rounding is RoundingMode.CEIL:
        return quotient + 1
    return quotient + 1 if remainder * 2 >= denominator else quotient


def to_fix(value: int | str | Decimal | float) -> int:
    """Convert a human-readable number into a fixed-point integer.

    Floats are converted through their shortest string representation so
    that ``to_fix(0.005)`` is exactly ``to_fix("0.005")``.

    :param value: Number to convert (e.g., ``"0.005"`` or ``1``).
    :returns: Value scaled by ``FIX_ONE``, rounded down.
    """
    if isinstance(value, float):
        value = str(value)
    return int((Decimal(value) * FIX_ONE).to_integral_value(rounding=ROUND_FLOOR))


def from_fix(value: int) -> Decimal:
    """Convert a fixed-point integer back to a ``Decimal`` for display."""
    return Decimal(value) / FIX_ONE


def mul_fix(x: int, y: int, rounding: RoundingMode = RoundingMode.ROUND) -> int:
    """Multiply two fixed-point values.

    :param x: Left operand.
    :param y: Right operand.
    :param rounding: Rounding for the dropped digits.
    :returns: ``x * y`` in fixed point.
    """
    return _divrnd(x * y, FIX_ONE, rounding)


def shift_to_fix(raw: int, decimals: int) -> int:
    """Rescale an integer with ``decimals`` decimals into fixed point.

    Used for contract reads: a Chainlink answer with 8 decimals or a RAY
    value with 27 decimals. Extra precision is dropped (rounded down).
    """
    if decimals <= FIX_DECIMALS:
        return raw * 10 ** (FIX_DECIMALS - decimals)
    return _divrnd(raw, 10 ** (decimals - FIX_DECIMALS), RoundingMode.FLOOR)


def compound_error(error: int, feeds: int) -> int:
    """Relative error of a price chained through ``feeds`` conversions.

    Each conversion can be off by ``error`` in either direction, so the
    chain can be off by ``(1 + error) ** feeds - 1``. Rounded up.

    .. code-block:: python

        >>> compound_error(to_fix("0.01"), 1) == to_fix("0.01")
        True
        >>> compound_error(to_fix("0.01"), 2) == to_fix("0.0201")
        True
    """
    if feeds < 1:
        raise ValueError("feeds must be at least 1")
    factor = FIX_ONE + error
    total = factor
    for _ in range(feeds - 1):
        total = mul_fix(total, factor, RoundingMode.CEIL)
    return total - FIX_ONE
