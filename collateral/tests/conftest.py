"""Shared fakes and fixtures for the collateral tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from collateral.src.Collateral import Collateral
from collateral.src.CollateralConfig import (
    CollateralConfig,
    FeedRef,
    FiatPegged,
    NonFiat,
    SelfReferential,
)
from collateral.src.errors import FeedReadError, RateSourceError
from collateral.src.feeds.base import FeedReading, OracleFeed
from collateral.src.fixlib import FIX_ONE, to_fix
from collateral.src.rates.base import ExchangeRateSource
from collateral.src.rewards import RewardSource

T0 = 1_700_000_000

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WBTC = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
SFRX_ETH = "0xac3E018457B222d93114458476f3E3416Abbe38F"
USDC_USD = "0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6"
WBTC_BTC = "0xfdFD9C85aD200c506Cf9e21F1FD8dd01932FBB23"
BTC_USD = "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c"
ETH_USD = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
REWARD_TOKEN = "0xc00e94Cb662C3520282E6f5717214004A7f26888"
HOLDER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class ManualFeed(OracleFeed):
    """Feed whose next reading is set by the test."""

    def __init__(self, address: str, price: int = FIX_ONE, updated_at: int = T0) -> None:
        self.address = address
        self.reading = FeedReading(price=price, updated_at=updated_at, round_id=1, answered_in_round=1)

    def set(self, price: int, updated_at: int) -> None:
        self.reading = FeedReading(price=price, updated_at=updated_at, round_id=1, answered_in_round=1)

    def latest(self) -> FeedReading:
        return self.reading


class FailingFeed(OracleFeed):
    """Feed whose every read fails."""

    def __init__(self, address: str) -> None:
        self.address = address

    def latest(self) -> FeedReading:
        raise FeedReadError(f"execution reverted at {self.address}")


class ManualRateSource(ExchangeRateSource):
    """Rate source whose rate is set by the test. ``fail`` makes reads raise."""

    name = "manual"

    def __init__(self, rate: int = FIX_ONE) -> None:
        self.value = rate
        self.fail = False

    def rate(self) -> int:
        if self.fail:
            raise RateSourceError("rate read reverted")
        return self.value


class StubRewardSource(RewardSource):
    """Reward source paying out a fixed amount per claim."""

    def __init__(self, amount: int, reward_token: str = REWARD_TOKEN) -> None:
        self.amount = amount
        self.reward_token = reward_token
        self.recipients: list[str] = []

    def claim(self, recipient: str) -> int:
        self.recipients.append(recipient)
        return self.amount


def make_config(pricing, **overrides) -> CollateralConfig:
    """Build a valid config around ``pricing``; keyword arguments override fields."""
    params = dict(
        erc20=USDC,
        target_name="USD",
        pricing=pricing,
        oracle_error=to_fix("0.0025"),
        max_trade_volume=to_fix(1_000_000),
        default_threshold=to_fix("0.01"),
        delay_until_default=86400,
        price_timeout=604800,
    )
    params.update(overrides)
    return CollateralConfig(**params)


@pytest.fixture
def clock():
    """Patch the engine's clock; set ``clock.return_value`` to move time."""
    with patch("collateral.src.Collateral.time.time") as mock_time:
        mock_time.return_value = float(T0)
        yield mock_time


@pytest.fixture
def usdc_feed() -> ManualFeed:
    return ManualFeed(USDC_USD)


@pytest.fixture
def rate_source() -> ManualRateSource:
    return ManualRateSource()


@pytest.fixture
def fiat_collateral(clock, usdc_feed, rate_source) -> Collateral:
    """A USDC-like fiat-pegged collateral at T0 with a fresh 1.00 feed."""
    config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, 86400)))
    return Collateral(config, rate_source)


@pytest.fixture
def eth_feed() -> ManualFeed:
    return ManualFeed(ETH_USD, price=to_fix(2000))


@pytest.fixture
def self_ref_pricing(eth_feed) -> SelfReferential:
    return SelfReferential(target_feed=FeedRef(eth_feed, 3600))


@pytest.fixture
def btc_feeds() -> tuple[ManualFeed, ManualFeed]:
    return ManualFeed(WBTC_BTC), ManualFeed(BTC_USD, price=to_fix(30000))


@pytest.fixture
def non_fiat_pricing(btc_feeds) -> NonFiat:
    peg, target = btc_feeds
    return NonFiat(peg_feed=FeedRef(peg, 86400), target_feed=FeedRef(target, 3600))
