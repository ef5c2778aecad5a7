"""Base oracle feed interface.

An oracle feed reports a price for one unit conversion together with the
round bookkeeping needed to judge its freshness. Feeds only read; deciding
whether a reading is stale or invalid is the pricer's job.

.. code-block:: python

    class MyFeed(OracleFeed):
        def latest(self) -> FeedReading:
            return FeedReading(price=to_fix("1.0"), updated_at=int(time.time()))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class FeedReading:
    """One round reported by an oracle feed.

    :ivar price: Price in 18-decimal fixed point. May be zero or negative
        when the feed reports a sentinel value.
    :ivar updated_at: Unix timestamp of the round's last update (0 if the
        round never completed).
    :ivar round_id: Round the answer belongs to.
    :ivar answered_in_round: Round in which the answer was computed. An
        answer carried over from an older round is stale.
    """

    price: int
    updated_at: int
    round_id: int = 0
    answered_in_round: int = 0


class OracleFeed(ABC):
    """Abstract oracle feed.

    :ivar address: Address identifying the feed (zero address if unset).
    :ivar description: Human-readable pair description (e.g., "ETH / USD").
    """

    address: str = ZERO_ADDRESS
    description: str = ""

    @abstractmethod
    def latest(self) -> FeedReading:
        """Read the latest round.

        :returns: The latest reading.
        :raises FeedReadError: If the feed cannot be read.
        """
        pass

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"{type(self).__name__}({self.address!r})"
