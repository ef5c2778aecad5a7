"""Collateral: Valuation and default detection for one wrapped token.

One instance wraps one deposit-able token. It owns the appreciation and
soundness state and references (never owns) its rate source, oracle feeds
and reward source.

Lifecycle:
    - Constructed SOUND from a validated CollateralConfig
    - ``refresh()`` re-reads the rate source and every feed, advances the
      appreciation tracker, prices, and drives the default monitor
    - Every other operation is a read of the state left by the last refresh
    - Once DEFAULT, the instance stays DEFAULT; recovery means replacing it

Collaborator failures never escape ``refresh()``: a failed read leaves the
price unknown for that cycle, and unknown for longer than the price timeout
is itself a default.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .AppreciationTracker import AppreciationTracker
from .DefaultMonitor import (
    REFPERTOK_DROPPED,
    CollateralStatus,
    DefaultMonitor,
    Transition,
)
from .errors import (
    CollateralDefaultedError,
    ConfigInvalidError,
    PriceUnknownTooLongError,
    RateUnavailableError,
    UnpriceableError,
)
from .events import CollateralStatusChanged, RewardsClaimed
from .fixlib import FIX_ONE
from .Pricer import PriceEstimate, Pricer

if TYPE_CHECKING:
    from .CollateralConfig import CollateralConfig
    from .events import CollateralEvent, EventListener
    from .feeds.base import FeedReading
    from .rates.base import ExchangeRateSource
    from .rewards import RewardSource

logger = logging.getLogger(__name__)

RATE_SOURCE_KEY = "rate_source"


def _usable_round(reading: FeedReading) -> bool:
    """Whether a reading held a usable price at its own update time.

    Age is not checked: an old but otherwise valid round still tells when
    the price was last known.
    """
    return (
        reading.updated_at > 0
        and reading.answered_in_round >= reading.round_id
        and reading.price > 0
    )


@dataclass
class PriceResult:
    """Result of a price query.

    :ivar low: Lower bound in the unit of account, or None if unavailable.
    :ivar high: Upper bound in the unit of account, or None if unavailable.
    :ivar error: Reason the price is unavailable (e.g., "feed_stale").
    """

    low: int | None
    high: int | None
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if a price is available."""
        return self.low is not None and self.high is not None


class Collateral:
    """Collateral adapter for one wrapped token.

    :ivar config: Immutable collateral parameters.
    :ivar erc20: Token address.
    :ivar rate_source: Raw exchange-rate source.
    :ivar reward_source: Optional reward-claim capability.
    :ivar holder: Account rewards are forwarded to.
    :ivar tracker: Appreciation tracker (peak rate, revenue hiding).
    :ivar pricer: Price range computation for the configured mode.
    :ivar monitor: SOUND/IFFY/DEFAULT state machine.
    :ivar saved_price: Last successfully computed estimate.
    :ivar last_save: Timestamp of ``saved_price``.
    """

    def __init__(
        self,
        config: CollateralConfig,
        rate_source: ExchangeRateSource,
        revenue_hiding: int = 0,
        reward_source: RewardSource | None = None,
        holder: str | None = None,
    ) -> None:
        """Initialize the collateral in SOUND.

        :param config: Validated collateral parameters.
        :param rate_source: Source of the raw exchange rate.
        :param revenue_hiding: Fraction of appreciation to hide, in [0, 1).
        :param reward_source: Optional reward source for ``claim_rewards()``.
        :param holder: Account receiving claimed rewards. Required with a
            reward source.
        :raises ConfigInvalidError: If any argument is invalid.
        """
        if rate_source is None:
            raise ConfigInvalidError("missing rate source")
        if reward_source is not None and not holder:
            raise ConfigInvalidError("reward source configured without a holder")

        self.config = config
        self.erc20 = config.erc20
        self.rate_source = rate_source
        self.reward_source = reward_source
        self.holder = holder

        self.tracker = AppreciationTracker(revenue_hiding)
        self.pricer = Pricer(config.pricing, config.oracle_error)
        self.monitor = DefaultMonitor(
            config.default_threshold, config.delay_until_default
        )

        self._feeds = config.pricing.feeds()
        self._readings: dict[str, FeedReading | None] = {role: None for role in self._feeds}

        # Last time each collaborator was known good; staleness counts from here
        now = int(time.time())
        self._last_good: dict[str, int] = {role: now for role in self._feeds}
        self._last_good[RATE_SOURCE_KEY] = now
        self._rate_ok = False

        self.saved_price: PriceEstimate | None = None
        self.last_save: int | None = None
        self._listeners: list[EventListener] = []

        logger.info(
            f"Collateral {self.erc20} initialized "
            f"(target={config.target_name}, mode={type(config.pricing).__name__}, "
            f"feeds={list(self._feeds)})"
        )

    # == Reads ==

    def status(self) -> CollateralStatus:
        """Current soundness status."""
        return self.monitor.status

    def ref_per_tok(self) -> int:
        """Exposed (revenue-hidden) reference units per token."""
        return self.tracker.exposed_rate

    def underlying_ref_per_tok(self) -> int:
        """Raw reference units per token from the last successful read."""
        return self.tracker.state.last_rate or 0

    def target_per_ref(self) -> int:
        """Expected target units per reference unit."""
        return FIX_ONE

    def when_default(self) -> int | None:
        """Timestamp at which the collateral defaults, None while SOUND."""
        return self.monitor.when_default()

    @property
    def iffy_since(self) -> int | None:
        return self.monitor.state.iffy_since

    @property
    def max_trade_volume(self) -> int:
        return self.config.max_trade_volume

    def staleness(self, now: int | None = None) -> int:
        """Seconds since the oldest last-good collaborator observation.

        :param now: Timestamp to measure at (default: current time).
        """
        if now is None:
            now = int(time.time())
        return max(now - min(self._last_good.values()), 0)

    def try_price(self) -> PriceEstimate:
        """Price from the readings cached by the last refresh.

        Does not read any collaborator and does not change state.

        :returns: The current price estimate.
        :raises CollateralDefaultedError: If the collateral has defaulted.
        :raises PriceUnknownTooLongError: If unpriceable for longer than the
            price timeout.
        :raises UnpriceableError: If the price is currently unknown.
        """
        if self.monitor.status is CollateralStatus.DEFAULT:
            raise CollateralDefaultedError(f"{self.erc20} has defaulted")
        return self._estimate(int(time.time()))

    def price(self) -> PriceResult:
        """Price range, or an explicit "no price" result.

        A defaulted collateral never reports a price.
        """
        try:
            estimate = self.try_price()
        except UnpriceableError as e:
            return PriceResult(low=None, high=None, error=e.reason)
        return PriceResult(low=estimate.low, high=estimate.high)

    def _estimate(self, now: int) -> PriceEstimate:
        try:
            if not self._rate_ok:
                raise RateUnavailableError(f"{self.erc20}: exchange rate unavailable")
            return self.pricer.estimate(self._readings, self.tracker.exposed_rate, now)
        except UnpriceableError as e:
            staleness = self.staleness(now)
            if staleness > self.config.price_timeout:
                raise PriceUnknownTooLongError(staleness, self.config.price_timeout) from e
            raise

    # == Refresh ==

    def refresh(self) -> CollateralStatus:
        """Re-read collaborators and update appreciation and soundness.

        Idempotent within one instant: a second call sees the same data and
        makes no further transition. A no-op once DEFAULT.

        :returns: Status after the refresh.
        """
        if self.monitor.status is CollateralStatus.DEFAULT:
            return CollateralStatus.DEFAULT

        now = int(time.time())
        self._read_rate(now)
        self._read_feeds()
        promise_broken = self._rate_ok and self.tracker.promise_broken

        transition: Transition | None
        try:
            estimate = self._estimate(now)
        except PriceUnknownTooLongError as e:
            logger.warning(f"{self.erc20}: {e}")
            transition = self.monitor.force_default(e.reason, now)
        except UnpriceableError as e:
            logger.warning(f"{self.erc20}: unpriceable ({e.reason}): {e}")
            if promise_broken:
                transition = self.monitor.observe(REFPERTOK_DROPPED, now)
            else:
                transition = self.monitor.hold(now)
        else:
            self.saved_price = estimate
            self.last_save = now
            reason = self.monitor.assess(estimate, promise_broken)
            transition = self.monitor.observe(reason, now)

        if transition is not None:
            self._log_transition(transition)
            self._emit(
                CollateralStatusChanged(
                    erc20=self.erc20,
                    old_status=transition.old,
                    new_status=transition.new,
                    reason=transition.reason,
                    timestamp=transition.timestamp,
                )
            )
        return self.monitor.status

    def _read_rate(self, now: int) -> None:
        try:
            raw_rate = self.rate_source.rate()
            self.tracker.update(raw_rate)
        except Exception as e:
            logger.warning(f"{self.erc20}: exchange rate read failed: {e}")
            self._rate_ok = False
            return

        self._rate_ok = True
        self._last_good[RATE_SOURCE_KEY] = now
        logger.debug(
            f"{self.erc20}: raw rate {raw_rate}, peak {self.tracker.peak_rate}, "
            f"exposed {self.tracker.exposed_rate}"
        )

    def _read_feeds(self) -> None:
        for role, ref in self._feeds.items():
            try:
                reading = ref.feed.latest()
            except Exception as e:
                logger.warning(f"{self.erc20}: {role} read failed: {e}")
                self._readings[role] = None
                continue

            self._readings[role] = reading
            if _usable_round(reading):
                self._last_good[role] = reading.updated_at

    def _log_transition(self, transition: Transition) -> None:
        message = (
            f"{self.erc20}: {transition.old.value} -> {transition.new.value} "
            f"({transition.reason})"
        )
        if transition.new is CollateralStatus.SOUND:
            logger.info(message)
        else:
            logger.warning(message)

    # == Rewards ==

    def claim_rewards(self) -> int:
        """Forward accrued rewards to the holder.

        :returns: Amount claimed (0 without a reward source).
        :raises RewardClaimError: If the claim fails.
        """
        if self.reward_source is None:
            amount = 0
            reward_token = None
        else:
            amount = self.reward_source.claim(self.holder)
            reward_token = self.reward_source.reward_token

        logger.info(f"{self.erc20}: claimed {amount} of {reward_token} for {self.holder}")
        self._emit(RewardsClaimed(erc20=self.erc20, reward_token=reward_token, amount=amount))
        return amount

    # == Notifications ==

    def subscribe(self, listener: EventListener) -> None:
        """Register a callback for status changes and reward claims."""
        self._listeners.append(listener)

    def _emit(self, event: CollateralEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"{self.erc20}: event listener failed on {event}: {e}")

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"Collateral({self.erc20!r}, status={self.monitor.status.value})"
