"""
Collateral Monitor - Valuation and Default Detection Module

This module values wrapped, interest-bearing tokens and judges their peg:
- AppreciationTracker: Monotonic exchange-rate tracking with revenue hiding
- Pricer: Bounded price ranges from chained oracle feeds
- DefaultMonitor: SOUND -> IFFY -> DEFAULT state machine with a grace timer
- Collateral: One adapter instance combining the above
- AssetRegistry: Failure-tolerant read facade over many collaterals
- CollateralMonitor: Polling service refreshing every collateral
- feeds, rates: Oracle feed and exchange-rate source implementations
"""

from .AppreciationTracker import AppreciationTracker
from .AssetRegistry import AssetRegistry, AssetView, BackingValue
from .Collateral import Collateral, PriceResult
from .CollateralConfig import (
    CollateralConfig,
    FeedRef,
    FiatPegged,
    NonFiat,
    SelfReferential,
)
from .CollateralMonitor import CollateralMonitor
from .DefaultMonitor import CollateralStatus, DefaultMonitor
from .errors import (
    CollateralError,
    ConfigInvalidError,
    FeedStaleError,
    PriceUnknownTooLongError,
    UnpriceableError,
)
from .fixlib import FIX_ONE, from_fix, to_fix
from .Pricer import PriceEstimate, Pricer

__all__ = [
    "FIX_ONE",
    "AppreciationTracker",
    "AssetRegistry",
    "AssetView",
    "BackingValue",
    "Collateral",
    "CollateralConfig",
    "CollateralError",
    "CollateralMonitor",
    "CollateralStatus",
    "ConfigInvalidError",
    "DefaultMonitor",
    "FeedRef",
    "FeedStaleError",
    "FiatPegged",
    "NonFiat",
    "PriceEstimate",
    "PriceResult",
    "PriceUnknownTooLongError",
    "Pricer",
    "SelfReferential",
    "UnpriceableError",
    "from_fix",
    "to_fix",
]
