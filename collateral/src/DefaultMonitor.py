"""DefaultMonitor: SOUND -> IFFY -> DEFAULT state machine with a grace timer.

Transitions, evaluated once per refresh:

- trouble observed: SOUND enters IFFY (``iffy_since = now``); IFFY stays
  IFFY until ``delay_until_default`` has elapsed, then DEFAULT
- trouble cleared: IFFY returns to SOUND, unless the grace period has
  already elapsed, in which case the asset defaults anyway
- condition unknown (price unknown but not for too long): status held,
  an IFFY grace timer keeps running
- price unknown for too long: DEFAULT immediately
- DEFAULT is terminal

Brief oracle blips therefore never cause a permanent default, and a
sustained peg break is never tolerated for longer than the grace period.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .fixlib import FIX_ONE, mul_fix
from .Pricer import PriceEstimate

# Reasons a collateral can be judged unsound
PEG_DEVIATION = "peg_deviation"
REFPERTOK_DROPPED = "refpertok_dropped"
ZERO_LOW_PRICE = "zero_low_price"
PRICE_UNKNOWN_TOO_LONG = "price_unknown_too_long"
GRACE_PERIOD_ELAPSED = "grace_period_elapsed"
RECOVERED = "recovered"


class CollateralStatus(Enum):
    """Soundness of a collateral."""

    SOUND = "sound"
    IFFY = "iffy"
    DEFAULT = "default"


@dataclass
class SoundnessState:
    """Mutable soundness state owned by one collateral.

    :ivar status: Current status.
    :ivar iffy_since: Timestamp IFFY was entered, set only while IFFY.
    :ivar defaulted_at: Timestamp of the default, set only once DEFAULT.
    :ivar reason: Reason for the latest transition.
    """

    status: CollateralStatus = CollateralStatus.SOUND
    iffy_since: int | None = None
    defaulted_at: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class Transition:
    """A status change produced by the monitor."""

    old: CollateralStatus
    new: CollateralStatus
    reason: str
    timestamp: int


class DefaultMonitor:
    """Decides collateral soundness from pricing signals.

    :ivar default_threshold: Tolerated peg deviation (fixed point).
    :ivar delay_until_default: Grace period in seconds.
    :ivar peg_bottom: Lowest acceptable peg price.
    :ivar peg_top: Highest acceptable peg price.
    :ivar state: Current soundness state.
    """

    def __init__(
        self,
        default_threshold: int,
        delay_until_default: int,
        target_per_ref: int = FIX_ONE,
    ) -> None:
        """Initialize the monitor in SOUND.

        :param default_threshold: Tolerated fractional peg deviation.
        :param delay_until_default: Seconds an asset may stay IFFY.
        :param target_per_ref: Expected peg price (one for every pricing mode).
        """
        self.default_threshold = default_threshold
        self.delay_until_default = delay_until_default
        self.peg_bottom = mul_fix(target_per_ref, FIX_ONE - default_threshold)
        self.peg_top = mul_fix(target_per_ref, FIX_ONE + default_threshold)
        self.state = SoundnessState()

    @property
    def status(self) -> CollateralStatus:
        return self.state.status

    def assess(self, estimate: PriceEstimate | None, promise_broken: bool) -> str | None:
        """Find what, if anything, makes the collateral unsound.

        :param estimate: Current price estimate, or None if unknown.
        :param promise_broken: Whether the raw rate fell below the exposed rate.
        :returns: A reason identifier, or None if nothing is wrong.
        """
        if promise_broken:
            return REFPERTOK_DROPPED
        if estimate is None:
            return None
        if estimate.peg_price < self.peg_bottom or estimate.peg_price > self.peg_top:
            return PEG_DEVIATION
        if estimate.low == 0:
            return ZERO_LOW_PRICE
        return None

    def when_default(self) -> int | None:
        """Timestamp at which the collateral defaults (or defaulted).

        :returns: None while SOUND, ``iffy_since + delay`` while IFFY, the
            default timestamp once DEFAULT.
        """
        state = self.state
        if state.status is CollateralStatus.DEFAULT:
            return state.defaulted_at
        if state.status is CollateralStatus.IFFY and state.iffy_since is not None:
            return state.iffy_since + self.delay_until_default
        return None

    def _grace_elapsed(self, now: int) -> bool:
        return (
            self.state.iffy_since is not None
            and now - self.state.iffy_since >= self.delay_until_default
        )

    def _move(self, new: CollateralStatus, reason: str, now: int) -> Transition | None:
        old = self.state.status
        if old is new:
            return None

        if new is CollateralStatus.IFFY:
            self.state.iffy_since = now
        elif new is CollateralStatus.SOUND:
            self.state.iffy_since = None
        else:
            self.state.iffy_since = None
            self.state.defaulted_at = now
        self.state.status = new
        self.state.reason = reason
        return Transition(old=old, new=new, reason=reason, timestamp=now)

    def observe(self, reason: str | None, now: int) -> Transition | None:
        """Apply one assessment.

        :param reason: Trouble found by :meth:`assess`, or None if clear.
        :param now: Current Unix timestamp.
        :returns: The transition, or None if the status did not change.
        """
        status = self.state.status
        if status is CollateralStatus.DEFAULT:
            return None

        if reason is None:
            if status is CollateralStatus.IFFY:
                if self._grace_elapsed(now):
                    return self._move(CollateralStatus.DEFAULT, GRACE_PERIOD_ELAPSED, now)
                return self._move(CollateralStatus.SOUND, RECOVERED, now)
            return None

        if status is CollateralStatus.SOUND:
            return self._move(CollateralStatus.IFFY, reason, now)
        if self._grace_elapsed(now):
            return self._move(CollateralStatus.DEFAULT, reason, now)
        return None

    def hold(self, now: int) -> Transition | None:
        """Keep the current status while the condition is unknown.

        An IFFY grace timer keeps running and may still expire.
        """
        if self.state.status is CollateralStatus.IFFY and self._grace_elapsed(now):
            return self._move(CollateralStatus.DEFAULT, GRACE_PERIOD_ELAPSED, now)
        return None

    def force_default(self, reason: str, now: int) -> Transition | None:
        """Move straight to DEFAULT."""
        if self.state.status is CollateralStatus.DEFAULT:
            return None
        return self._move(CollateralStatus.DEFAULT, reason, now)
