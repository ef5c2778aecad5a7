"""
Oracle feeds reporting prices for unit conversions.

Usage:
    from collateral.src.feeds import ChainlinkFeed

    feed = ChainlinkFeed(w3, "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419")
    reading = feed.latest()
"""

from .base import ZERO_ADDRESS, FeedReading, OracleFeed
from .chainlink import AGGREGATOR_V3_ABI, ChainlinkFeed

__all__ = [
    "AGGREGATOR_V3_ABI",
    "ZERO_ADDRESS",
    "ChainlinkFeed",
    "FeedReading",
    "OracleFeed",
]
