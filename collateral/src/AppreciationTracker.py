"""AppreciationTracker: Monotonic exchange-rate tracking with revenue hiding.

The tracker remembers the highest raw exchange rate ever observed and
exposes only ``peak * (1 - h)`` of it. The hidden slice absorbs transient
rate inflation (e.g., a flash-loan manipulated pool) and small losses in the
underlying, so the rest of the system is never promised more backing than
the token actually has.

A raw rate that falls back below the peak does not lower the exposed rate.
If it falls below the exposed rate itself, the promise is broken and
:attr:`AppreciationTracker.promise_broken` reports it.

.. code-block:: python

    >>> tracker = AppreciationTracker(revenue_hiding=to_fix("0.1"))
    >>> [from_fix(tracker.update(to_fix(r))) for r in ("1.00", "1.05", "1.03")]
    [Decimal('0.9'), Decimal('0.945'), Decimal('0.945')]
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigInvalidError
from .fixlib import FIX_ONE, RoundingMode, mul_fix


@dataclass
class AppreciationState:
    """Mutable appreciation state owned by one collateral.

    :ivar peak_rate: Highest raw rate ever observed.
    :ivar last_rate: Raw rate of the latest update, None before the first.
    """

    peak_rate: int = 0
    last_rate: int | None = None


class AppreciationTracker:
    """Tracks the peak raw rate and derives the exposed rate.

    :ivar revenue_hiding: Hidden fraction ``h`` in 18-decimal fixed point.
    :ivar state: Peak and latest raw rates.
    """

    def __init__(self, revenue_hiding: int = 0) -> None:
        """Initialize the tracker.

        :param revenue_hiding: Fraction of appreciation to hide, in [0, 1).
        :raises ConfigInvalidError: If the fraction is out of range.
        """
        if not 0 <= revenue_hiding < FIX_ONE:
            raise ConfigInvalidError("revenue hiding out of range")
        self.revenue_hiding = revenue_hiding
        self.revenue_showing = FIX_ONE - revenue_hiding
        self.state = AppreciationState()

    @property
    def peak_rate(self) -> int:
        return self.state.peak_rate

    @property
    def exposed_rate(self) -> int:
        """Peak rate with the hidden slice removed, rounded down."""
        return mul_fix(self.state.peak_rate, self.revenue_showing, RoundingMode.FLOOR)

    @property
    def promise_broken(self) -> bool:
        """True when the latest raw rate is below the exposed rate."""
        last = self.state.last_rate
        return last is not None and last < self.exposed_rate

    def update(self, raw_rate: int) -> int:
        """Record a raw rate observation.

        :param raw_rate: Reference units per token, fixed point, >= 0.
        :returns: The exposed rate after the update.
        :raises ValueError: If the raw rate is negative.
        """
        if raw_rate < 0:
            raise ValueError(f"raw rate must be non-negative: {raw_rate}")
        self.state.last_rate = raw_rate
        if raw_rate > self.state.peak_rate:
            self.state.peak_rate = raw_rate
        return self.exposed_rate
