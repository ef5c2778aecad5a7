"""Exceptions raised by the collateral engine and its collaborators.

Every exception carries a short ``reason`` identifier. The identifiers show
up in :class:`~collateral.src.Collateral.PriceResult` and in log lines, so
callers can branch on them without matching exception types.
"""


class CollateralError(Exception):
    """Base exception for the collateral engine."""

    reason = "collateral_error"


class ConfigInvalidError(CollateralError, ValueError):
    """Raised when a collateral cannot be constructed from its configuration."""

    reason = "config_invalid"


class FeedReadError(CollateralError):
    """Raised by an oracle feed when its latest round cannot be read."""

    reason = "feed_read_failed"


class RateSourceError(CollateralError):
    """Raised by an exchange-rate source when the rate cannot be read."""

    reason = "rate_read_failed"


class RewardClaimError(CollateralError):
    """Raised by a reward source when a claim cannot be completed."""

    reason = "reward_claim_failed"


class UnpriceableError(CollateralError):
    """The price is currently unknown. Never the same as a price of zero."""

    reason = "unpriceable"


class FeedStaleError(UnpriceableError):
    """A feed has not been updated within its oracle timeout.

    :ivar feed: Role name of the stale feed.
    :ivar age: Seconds since the feed's last update, if known.
    """

    reason = "feed_stale"

    def __init__(self, feed: str, age: int | None, timeout: int):
        """Initialize the error.

        :param feed: Role name of the feed (e.g., "target_feed").
        :param age: Seconds since the last update, or None if never updated.
        :param timeout: Configured oracle timeout for the feed.
        """
        self.feed = feed
        self.age = age
        self.timeout = timeout
        if age is None:
            super().__init__(f"{feed} has no completed round")
        else:
            super().__init__(f"{feed} is stale ({age}s old, timeout {timeout}s)")


class FeedInvalidError(UnpriceableError):
    """A feed reported a zero or negative price."""

    reason = "feed_invalid"


class FeedUnavailableError(UnpriceableError):
    """A feed could not be read during the last refresh."""

    reason = "feed_unavailable"


class RateUnavailableError(UnpriceableError):
    """The exchange-rate source could not be read during the last refresh."""

    reason = "rate_unavailable"


class PriceUnknownTooLongError(UnpriceableError):
    """The price has been unknown for longer than the price timeout.

    :ivar staleness: Seconds since the oldest last-good observation.
    """

    reason = "price_unknown_too_long"

    def __init__(self, staleness: int, price_timeout: int):
        """Initialize the error.

        :param staleness: Seconds since the oldest last-good observation.
        :param price_timeout: Configured price timeout.
        """
        self.staleness = staleness
        self.price_timeout = price_timeout
        super().__init__(
            f"price unknown for {staleness}s (price timeout {price_timeout}s)"
        )


class CollateralDefaultedError(UnpriceableError):
    """The collateral has defaulted and no longer reports a price."""

    reason = "defaulted"
