"""Unit tests for Collateral."""

import pytest

from conftest import (
    HOLDER,
    REWARD_TOKEN,
    SFRX_ETH,
    T0,
    USDC,
    USDC_USD,
    WBTC,
    FailingFeed,
    ManualRateSource,
    StubRewardSource,
    make_config,
)
from collateral.src.Collateral import Collateral
from collateral.src.CollateralConfig import FeedRef, FiatPegged
from collateral.src.DefaultMonitor import CollateralStatus
from collateral.src.errors import (
    CollateralDefaultedError,
    ConfigInvalidError,
    PriceUnknownTooLongError,
    RateUnavailableError,
    UnpriceableError,
)
from collateral.src.events import CollateralStatusChanged, RewardsClaimed
from collateral.src.feeds.base import FeedReading
from collateral.src.fixlib import FIX_ONE, to_fix

DAY = 86400
WEEK = 604800


class TestCollateralInit:
    """Test Collateral construction."""

    def test_starts_sound_without_io(self, fiat_collateral) -> None:
        assert fiat_collateral.status() is CollateralStatus.SOUND
        assert fiat_collateral.when_default() is None
        assert fiat_collateral.iffy_since is None
        assert fiat_collateral.ref_per_tok() == 0
        assert fiat_collateral.saved_price is None

    def test_reads_from_config(self, fiat_collateral) -> None:
        assert fiat_collateral.erc20 == USDC
        assert fiat_collateral.max_trade_volume == to_fix(1_000_000)
        assert fiat_collateral.target_per_ref() == FIX_ONE

    def test_missing_rate_source(self, clock, usdc_feed) -> None:
        config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, DAY)))
        with pytest.raises(ConfigInvalidError, match="missing rate source"):
            Collateral(config, None)

    def test_reward_source_requires_holder(self, clock, usdc_feed, rate_source) -> None:
        config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, DAY)))
        with pytest.raises(ConfigInvalidError, match="without a holder"):
            Collateral(config, rate_source, reward_source=StubRewardSource(1))

    def test_revenue_hiding_validated(self, clock, usdc_feed, rate_source) -> None:
        config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, DAY)))
        with pytest.raises(ConfigInvalidError, match="revenue hiding"):
            Collateral(config, rate_source, revenue_hiding=FIX_ONE)

    def test_price_unknown_before_first_refresh(self, fiat_collateral) -> None:
        with pytest.raises(RateUnavailableError):
            fiat_collateral.try_price()

    def test_repr(self, fiat_collateral) -> None:
        assert repr(fiat_collateral) == f"Collateral('{USDC}', status=sound)"


class TestCollateralPricing:
    """Test prices after a refresh."""

    def test_fiat_price_at_peg(self, fiat_collateral) -> None:
        assert fiat_collateral.refresh() is CollateralStatus.SOUND

        result = fiat_collateral.price()

        assert result.success
        assert result.low == to_fix("0.9975")
        assert result.high == to_fix("1.0025")
        assert fiat_collateral.saved_price is not None
        assert fiat_collateral.last_save == T0

    def test_revenue_hiding_in_price(self, clock, eth_feed, self_ref_pricing) -> None:
        source = ManualRateSource(to_fix("1.05"))
        config = make_config(
            self_ref_pricing,
            erc20=SFRX_ETH,
            target_name="ETH",
            default_threshold=0,
            oracle_error=to_fix("0.005"),
        )
        collateral = Collateral(config, source, revenue_hiding=to_fix("0.1"))

        collateral.refresh()

        assert collateral.ref_per_tok() == to_fix("0.945")
        assert collateral.underlying_ref_per_tok() == to_fix("1.05")
        assert collateral.try_price().mid == to_fix(1890)

    def test_try_price_does_not_read_collaborators(self, fiat_collateral, usdc_feed) -> None:
        fiat_collateral.refresh()
        usdc_feed.set(to_fix("0.5"), T0)

        assert fiat_collateral.try_price().peg_price == FIX_ONE

    def test_price_reports_reason_when_unpriceable(self, fiat_collateral, usdc_feed) -> None:
        usdc_feed.set(FIX_ONE, T0 - DAY - 1)
        fiat_collateral.refresh()

        result = fiat_collateral.price()

        assert not result.success
        assert result.error == "feed_stale"

    def test_non_fiat_depeg(self, clock, non_fiat_pricing, btc_feeds, rate_source) -> None:
        peg, _ = btc_feeds
        peg.set(to_fix("0.97"), T0)
        collateral = Collateral(
            make_config(non_fiat_pricing, erc20=WBTC, target_name="BTC"), rate_source
        )

        assert collateral.refresh() is CollateralStatus.IFFY
        assert collateral.monitor.state.reason == "peg_deviation"


class TestCollateralDefault:
    """Test soundness transitions driven by refresh."""

    def test_peg_deviation_then_default(self, fiat_collateral, usdc_feed, clock) -> None:
        """2% off peg with a 1% threshold: IFFY now, DEFAULT a day later."""
        usdc_feed.set(to_fix("0.98"), T0)
        assert fiat_collateral.refresh() is CollateralStatus.IFFY
        assert fiat_collateral.iffy_since == T0
        assert fiat_collateral.when_default() == T0 + DAY

        clock.return_value = float(T0 + DAY - 1)
        usdc_feed.set(to_fix("0.98"), T0 + DAY - 1)
        assert fiat_collateral.refresh() is CollateralStatus.IFFY

        clock.return_value = float(T0 + DAY)
        usdc_feed.set(to_fix("0.98"), T0 + DAY)
        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT
        assert fiat_collateral.when_default() == T0 + DAY

    def test_recovery(self, fiat_collateral, usdc_feed, clock) -> None:
        usdc_feed.set(to_fix("0.98"), T0)
        fiat_collateral.refresh()

        clock.return_value = float(T0 + 500)
        usdc_feed.set(to_fix("0.995"), T0 + 500)

        assert fiat_collateral.refresh() is CollateralStatus.SOUND
        assert fiat_collateral.iffy_since is None

    def test_stale_feed_held_until_price_timeout(self, fiat_collateral, usdc_feed, clock) -> None:
        usdc_feed.set(FIX_ONE, T0 - DAY - 100)
        assert fiat_collateral.refresh() is CollateralStatus.SOUND
        with pytest.raises(UnpriceableError):
            fiat_collateral.try_price()

        clock.return_value = float(T0 + WEEK)
        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT
        assert fiat_collateral.monitor.state.reason == "price_unknown_too_long"

    def test_zero_price_held_until_price_timeout(self, fiat_collateral, usdc_feed, clock) -> None:
        """Fresh rounds with a zero answer never count as a known price."""
        for now in range(T0, T0 + 3 * WEEK, 3600):
            clock.return_value = float(now)
            usdc_feed.set(0, now)
            status = fiat_collateral.refresh()
            if now <= T0 + WEEK:
                assert status is CollateralStatus.SOUND
            else:
                assert status is CollateralStatus.DEFAULT
                break

        assert fiat_collateral.monitor.state.reason == "price_unknown_too_long"

    def test_carried_over_round_held_until_price_timeout(
        self, fiat_collateral, usdc_feed, clock
    ) -> None:
        usdc_feed.reading = FeedReading(price=FIX_ONE, updated_at=T0, round_id=5, answered_in_round=4)
        assert fiat_collateral.refresh() is CollateralStatus.SOUND
        assert fiat_collateral.price().error == "feed_stale"

        clock.return_value = float(T0 + WEEK + 3600)
        usdc_feed.reading = FeedReading(
            price=FIX_ONE, updated_at=T0 + WEEK + 3600, round_id=5, answered_in_round=4
        )
        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT
        assert fiat_collateral.monitor.state.reason == "price_unknown_too_long"

    def test_valid_round_resets_staleness(self, fiat_collateral, usdc_feed, clock) -> None:
        usdc_feed.set(0, T0)
        fiat_collateral.refresh()

        clock.return_value = float(T0 + WEEK - 1)
        usdc_feed.set(FIX_ONE, T0 + WEEK - 1)
        assert fiat_collateral.refresh() is CollateralStatus.SOUND

        clock.return_value = float(T0 + WEEK + 3600)
        usdc_feed.set(0, T0 + WEEK + 3600)
        assert fiat_collateral.refresh() is CollateralStatus.SOUND

    def test_one_feed_stale_other_fresh(self, clock, non_fiat_pricing, btc_feeds, rate_source) -> None:
        peg, target = btc_feeds
        target.set(to_fix(30000), T0 - 3601)
        collateral = Collateral(
            make_config(non_fiat_pricing, erc20=WBTC, target_name="BTC"), rate_source
        )

        assert collateral.refresh() is CollateralStatus.SOUND
        with pytest.raises(UnpriceableError, match="target_feed is stale"):
            collateral.try_price()

        clock.return_value = float(T0 + WEEK)
        peg.set(FIX_ONE, T0 + WEEK)
        assert collateral.refresh() is CollateralStatus.DEFAULT

    def test_unpriceable_too_long_reported_by_try_price(
        self, fiat_collateral, usdc_feed, clock
    ) -> None:
        usdc_feed.set(FIX_ONE, T0 - DAY - 100)
        fiat_collateral.refresh()

        clock.return_value = float(T0 + WEEK)
        with pytest.raises(PriceUnknownTooLongError):
            fiat_collateral.try_price()

    def test_failing_feed_is_caught(self, clock, rate_source) -> None:
        config = make_config(FiatPegged(ref_feed=FeedRef(FailingFeed(USDC_USD), DAY)))
        collateral = Collateral(config, rate_source)

        assert collateral.refresh() is CollateralStatus.SOUND
        assert collateral.price().error == "feed_unavailable"

        clock.return_value = float(T0 + WEEK + 1)
        assert collateral.refresh() is CollateralStatus.DEFAULT

    def test_failing_rate_source_is_caught(self, fiat_collateral, rate_source) -> None:
        rate_source.fail = True

        assert fiat_collateral.refresh() is CollateralStatus.SOUND
        assert fiat_collateral.price().error == "rate_unavailable"

    def test_rate_drop_makes_iffy(self, fiat_collateral, rate_source, clock) -> None:
        fiat_collateral.refresh()

        rate_source.value = to_fix("0.99")
        clock.return_value = float(T0 + 60)

        assert fiat_collateral.refresh() is CollateralStatus.IFFY
        assert fiat_collateral.monitor.state.reason == "refpertok_dropped"
        assert fiat_collateral.ref_per_tok() == FIX_ONE

    def test_iffy_grace_timer_runs_while_unpriceable(
        self, fiat_collateral, usdc_feed, clock
    ) -> None:
        usdc_feed.set(to_fix("0.98"), T0)
        fiat_collateral.refresh()

        clock.return_value = float(T0 + DAY)
        usdc_feed.set(to_fix("0.98"), T0 - 1)
        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT

    def test_default_is_terminal(self, fiat_collateral, usdc_feed, clock) -> None:
        usdc_feed.set(to_fix("0.98"), T0)
        fiat_collateral.refresh()
        clock.return_value = float(T0 + DAY)
        usdc_feed.set(to_fix("0.98"), T0 + DAY)
        fiat_collateral.refresh()

        events = []
        fiat_collateral.subscribe(events.append)
        clock.return_value = float(T0 + 2 * DAY)
        usdc_feed.set(FIX_ONE, T0 + 2 * DAY)

        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT
        assert fiat_collateral.price().error == "defaulted"
        assert events == []

    def test_try_price_raises_once_defaulted(self, fiat_collateral, usdc_feed, clock) -> None:
        usdc_feed.set(to_fix("0.98"), T0)
        fiat_collateral.refresh()
        clock.return_value = float(T0 + DAY)
        usdc_feed.set(to_fix("0.98"), T0 + DAY)
        assert fiat_collateral.refresh() is CollateralStatus.DEFAULT

        with pytest.raises(CollateralDefaultedError, match="has defaulted") as excinfo:
            fiat_collateral.try_price()

        assert isinstance(excinfo.value, UnpriceableError)
        assert excinfo.value.reason == "defaulted"
        price = fiat_collateral.price()
        assert (price.low, price.high) == (None, None)

    def test_refresh_idempotent(self, fiat_collateral, usdc_feed) -> None:
        events = []
        fiat_collateral.subscribe(events.append)
        usdc_feed.set(to_fix("0.98"), T0)

        fiat_collateral.refresh()
        fiat_collateral.refresh()

        assert fiat_collateral.status() is CollateralStatus.IFFY
        assert fiat_collateral.iffy_since == T0
        assert len(events) == 1


class TestCollateralEvents:
    """Test status and reward notifications."""

    def test_status_change_event(self, fiat_collateral, usdc_feed) -> None:
        events = []
        fiat_collateral.subscribe(events.append)
        usdc_feed.set(to_fix("1.02"), T0)

        fiat_collateral.refresh()

        assert events == [
            CollateralStatusChanged(
                erc20=USDC,
                old_status=CollateralStatus.SOUND,
                new_status=CollateralStatus.IFFY,
                reason="peg_deviation",
                timestamp=T0,
            )
        ]

    def test_failing_listener_does_not_break_refresh(self, fiat_collateral, usdc_feed) -> None:
        received = []

        def broken(event) -> None:
            raise RuntimeError("listener bug")

        fiat_collateral.subscribe(broken)
        fiat_collateral.subscribe(received.append)
        usdc_feed.set(to_fix("0.98"), T0)

        assert fiat_collateral.refresh() is CollateralStatus.IFFY
        assert len(received) == 1


class TestClaimRewards:
    """Test reward claiming."""

    def test_claim_forwards_to_holder(self, clock, usdc_feed, rate_source) -> None:
        rewards = StubRewardSource(500)
        config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, DAY)))
        collateral = Collateral(config, rate_source, reward_source=rewards, holder=HOLDER)
        events = []
        collateral.subscribe(events.append)

        assert collateral.claim_rewards() == 500
        assert rewards.recipients == [HOLDER]
        assert events == [RewardsClaimed(erc20=USDC, reward_token=REWARD_TOKEN, amount=500)]

    def test_claim_does_not_touch_state(self, clock, usdc_feed, rate_source) -> None:
        config = make_config(FiatPegged(ref_feed=FeedRef(usdc_feed, DAY)))
        collateral = Collateral(
            config, rate_source, reward_source=StubRewardSource(1), holder=HOLDER
        )
        collateral.refresh()
        before = (collateral.status(), collateral.ref_per_tok(), collateral.tracker.peak_rate)

        collateral.claim_rewards()

        assert (collateral.status(), collateral.ref_per_tok(), collateral.tracker.peak_rate) == before

    def test_claim_without_reward_source(self, fiat_collateral) -> None:
        events = []
        fiat_collateral.subscribe(events.append)

        assert fiat_collateral.claim_rewards() == 0
        assert events == [RewardsClaimed(erc20=USDC, reward_token=None, amount=0)]
