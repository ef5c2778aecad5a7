"""CollateralConfig: Immutable parameters of one collateral adapter.

The pricing mode is a tagged variant chosen once at construction. Each
variant holds only the feeds it prices with:

- FiatPegged: one feed, unit of account per reference (e.g., USDC / USD)
- SelfReferential: one feed, unit of account per target, plus an optional
  target-per-reference peg feed (e.g., ETH / USD and frxETH / ETH)
- NonFiat: a target-per-reference peg feed chained with a unit of account
  per target feed (e.g., WBTC / BTC and BTC / USD)

.. code-block:: python

    >>> config = CollateralConfig(
    ...     erc20=SFRX_ETH,
    ...     target_name="ETH",
    ...     pricing=SelfReferential(target_feed=FeedRef(eth_usd, 86400)),
    ...     oracle_error=to_fix("0.005"),
    ...     max_trade_volume=to_fix(1_000_000),
    ...     default_threshold=0,
    ...     delay_until_default=86400,
    ...     price_timeout=604800,
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigInvalidError
from .feeds.base import ZERO_ADDRESS, OracleFeed
from .fixlib import FIX_ONE

# Longest allowed grace period between IFFY and DEFAULT (2 weeks)
MAX_DELAY_UNTIL_DEFAULT = 1_209_600


@dataclass(frozen=True)
class FeedRef:
    """An oracle feed together with its staleness timeout.

    :ivar feed: Feed to read.
    :ivar timeout: Seconds after its last update at which a reading is stale.
    """

    feed: OracleFeed
    timeout: int


@dataclass(frozen=True)
class FiatPegged:
    """Reference asset priced directly in the unit of account.

    The reference feed doubles as the peg: target and unit of account are
    the same, so the feed's price is the target-per-reference ratio.
    """

    ref_feed: FeedRef

    def feeds(self) -> dict[str, FeedRef]:
        return {"ref_feed": self.ref_feed}

    @property
    def chained_feeds(self) -> int:
        return 1


@dataclass(frozen=True)
class SelfReferential:
    """Target and reference are the same asset (or assumed to be).

    Without a peg feed the peg price is exactly one.
    """

    target_feed: FeedRef
    peg_feed: FeedRef | None = None

    def feeds(self) -> dict[str, FeedRef]:
        feeds = {"target_feed": self.target_feed}
        if self.peg_feed is not None:
            feeds["peg_feed"] = self.peg_feed
        return feeds

    @property
    def chained_feeds(self) -> int:
        return 1


@dataclass(frozen=True)
class NonFiat:
    """Reference priced through its target: ref -> target -> unit of account."""

    peg_feed: FeedRef
    target_feed: FeedRef

    def feeds(self) -> dict[str, FeedRef]:
        return {"peg_feed": self.peg_feed, "target_feed": self.target_feed}

    @property
    def chained_feeds(self) -> int:
        return 2


PricingMode = FiatPegged | SelfReferential | NonFiat


@dataclass(frozen=True)
class CollateralConfig:
    """Immutable collateral parameters, validated on construction.

    Fractions are 18-decimal fixed point, durations are seconds.

    :ivar erc20: Address of the wrapped token.
    :ivar target_name: Target unit the token is expected to track (e.g., "USD").
    :ivar pricing: Pricing mode holding the feeds.
    :ivar oracle_error: Relative uncertainty of each feed, in (0, 1).
    :ivar max_trade_volume: Maximum tradable volume in the unit of account.
    :ivar default_threshold: Tolerated peg deviation, in [0, 1). Must be
        positive whenever the mode has a peg feed.
    :ivar delay_until_default: Seconds an asset may stay IFFY.
    :ivar price_timeout: Seconds without a price after which the asset defaults.
    """

    erc20: str
    target_name: str
    pricing: PricingMode
    oracle_error: int
    max_trade_volume: int
    default_threshold: int
    delay_until_default: int
    price_timeout: int

    def __post_init__(self) -> None:
        if not self.erc20 or self.erc20 == ZERO_ADDRESS:
            raise ConfigInvalidError("missing erc20")
        if not self.target_name:
            raise ConfigInvalidError("target name missing")
        if not isinstance(self.pricing, (FiatPegged, SelfReferential, NonFiat)):
            raise ConfigInvalidError(f"unknown pricing mode: {self.pricing!r}")

        for role, ref in self.pricing.feeds().items():
            if ref is None or ref.feed is None or ref.feed.address in ("", ZERO_ADDRESS):
                raise ConfigInvalidError(f"missing {role}")
            if ref.timeout <= 0:
                raise ConfigInvalidError(f"{role} timeout must be positive")

        if self.price_timeout <= 0:
            raise ConfigInvalidError("price timeout must be positive")
        if not 0 < self.oracle_error < FIX_ONE:
            raise ConfigInvalidError("oracle error out of range")
        if self.max_trade_volume <= 0:
            raise ConfigInvalidError("invalid max trade volume")
        if not 0 <= self.default_threshold < FIX_ONE:
            raise ConfigInvalidError("default threshold out of range")
        if self.default_threshold == 0 and self.has_peg_feed:
            raise ConfigInvalidError("default threshold must be positive with a peg feed")
        if self.delay_until_default <= 0:
            raise ConfigInvalidError("delay until default must be positive")
        if self.delay_until_default > MAX_DELAY_UNTIL_DEFAULT:
            raise ConfigInvalidError("delay until default too long")

    @property
    def has_peg_feed(self) -> bool:
        """Whether the peg price comes from a feed rather than being exactly one."""
        return "peg_feed" in self.pricing.feeds() or isinstance(self.pricing, FiatPegged)
