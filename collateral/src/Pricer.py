"""Pricer: Bounded price estimates from oracle readings and the exposed rate.

Algorithm:
    1. Validate every configured feed reading on its own (freshness, round
       completeness, positive price)
    2. Combine the feed prices according to the pricing mode
    3. Multiply by the exposed (revenue-hidden) exchange rate to get ``mid``
    4. Widen ``mid`` by the oracle error compounded over the chained feeds,
       rounded up, to get ``low`` and ``high``

Any feed failing validation makes the whole price unknown. There is no
best-guess fallback.

.. code-block:: python

    >>> pricer = Pricer(FiatPegged(FeedRef(usdc_usd, 86400)), to_fix("0.005"))
    >>> est = pricer.estimate({"ref_feed": reading}, exposed_rate=FIX_ONE, now=now)
    >>> (from_fix(est.low), from_fix(est.high))
    (Decimal('0.995'), Decimal('1.005'))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .CollateralConfig import FiatPegged, NonFiat, PricingMode, SelfReferential
from .errors import FeedInvalidError, FeedStaleError, FeedUnavailableError
from .fixlib import FIX_ONE, RoundingMode, compound_error, mul_fix

if TYPE_CHECKING:
    from .feeds.base import FeedReading


@dataclass(frozen=True)
class PriceEstimate:
    """A price range in the unit of account.

    :ivar low: Lower bound, ``mid - err``.
    :ivar high: Upper bound, ``mid + err``.
    :ivar peg_price: Observed target-per-reference ratio.
    :ivar mid: Point estimate before the error band is applied.
    """

    low: int
    high: int
    peg_price: int
    mid: int


def feed_price(role: str, reading: FeedReading | None, timeout: int, now: int) -> int:
    """Validate one feed reading and return its price.

    :param role: Role name of the feed, used in error messages.
    :param reading: Latest reading, or None if the last read failed.
    :param timeout: Oracle timeout for the feed in seconds.
    :param now: Current Unix timestamp.
    :returns: The reading's price.
    :raises FeedUnavailableError: If there is no reading.
    :raises FeedStaleError: If the round is incomplete, carried over, or too old.
    :raises FeedInvalidError: If the price is zero or negative.
    """
    if reading is None:
        raise FeedUnavailableError(f"{role} could not be read")
    if reading.updated_at == 0 or reading.answered_in_round < reading.round_id:
        raise FeedStaleError(role, None, timeout)

    age = now - reading.updated_at
    if age > timeout:
        raise FeedStaleError(role, age, timeout)
    if reading.price <= 0:
        raise FeedInvalidError(f"{role} reported non-positive price {reading.price}")
    return reading.price


class Pricer:
    """Combines feed readings with the exposed rate into a price range.

    :ivar pricing: Pricing mode holding the feeds and their timeouts.
    :ivar oracle_error: Per-feed relative error.
    :ivar combined_error: Oracle error compounded over the chained feeds.
    """

    def __init__(self, pricing: PricingMode, oracle_error: int) -> None:
        self.pricing = pricing
        self.oracle_error = oracle_error
        self.combined_error = compound_error(oracle_error, pricing.chained_feeds)

    def _price(self, role: str, readings: dict[str, FeedReading | None], now: int) -> int:
        ref = self.pricing.feeds()[role]
        return feed_price(role, readings.get(role), ref.timeout, now)

    def estimate(
        self,
        readings: dict[str, FeedReading | None],
        exposed_rate: int,
        now: int,
    ) -> PriceEstimate:
        """Compute the price range.

        :param readings: Latest reading per feed role.
        :param exposed_rate: Revenue-hidden refPerTok.
        :param now: Current Unix timestamp.
        :returns: The price estimate.
        :raises UnpriceableError: If any feed reading fails validation.
        """
        pricing = self.pricing
        if isinstance(pricing, FiatPegged):
            peg_price = self._price("ref_feed", readings, now)
            uoa_per_ref = peg_price
        elif isinstance(pricing, SelfReferential):
            uoa_per_ref = self._price("target_feed", readings, now)
            if pricing.peg_feed is not None:
                peg_price = self._price("peg_feed", readings, now)
            else:
                peg_price = FIX_ONE
        elif isinstance(pricing, NonFiat):
            peg_price = self._price("peg_feed", readings, now)
            uoa_per_target = self._price("target_feed", readings, now)
            uoa_per_ref = mul_fix(peg_price, uoa_per_target)
        else:
            raise TypeError(f"Unknown pricing mode: {pricing!r}")

        mid = mul_fix(uoa_per_ref, exposed_rate)
        err = mul_fix(mid, self.combined_error, RoundingMode.CEIL)
        return PriceEstimate(
            low=max(mid - err, 0),
            high=mid + err,
            peg_price=peg_price,
            mid=mid,
        )
