"""CollateralMonitor: Polling service refreshing every registered collateral.

Architecture:
    - One AssetRegistry holding every collateral loaded at startup
    - A single loop refreshes all collaterals every poll_period
    - Per-asset failures are logged and skipped, never stop the loop
    - Optional reward claiming after each refresh cycle
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .AssetRegistry import AssetRegistry, AssetView
from .errors import RewardClaimError
from .fixlib import from_fix

if TYPE_CHECKING:
    from .Collateral import Collateral

logger = logging.getLogger(__name__)


class CollateralMonitor:
    """Refresh loop over a set of collaterals.

    :ivar registry: Registry of monitored collaterals.
    :ivar poll_period: Seconds between refresh cycles.
    :ivar claim_rewards: Whether to claim rewards every cycle.
    """

    def __init__(
        self,
        collaterals: list[Collateral],
        poll_period: float = 60,
        claim_rewards: bool = False,
    ) -> None:
        """Initialize the monitor.

        :param collaterals: Collaterals to monitor.
        :param poll_period: Seconds between refresh cycles (default: 60).
        :param claim_rewards: Claim rewards after each refresh (default: False).
        :raises ValueError: If no collaterals are given or a token is duplicated.
        """
        if not collaterals:
            raise ValueError("At least one collateral must be specified")

        self.poll_period = poll_period
        self.claim_rewards = claim_rewards
        self.registry = AssetRegistry()
        for collateral in collaterals:
            if not self.registry.register(collateral):
                raise ValueError(f"Duplicate collateral for {collateral.erc20}")

        logger.info(
            f"CollateralMonitor initialized: {len(self.registry)} collaterals, "
            f"poll_period={self.poll_period}s, claim_rewards={self.claim_rewards}"
        )

    @staticmethod
    def _format_view(view: AssetView) -> str:
        if view.low is None or view.high is None:
            price = f"no price ({view.error})"
        else:
            price = f"${from_fix(view.low):.6f} - ${from_fix(view.high):.6f}"
        return (
            f"{view.erc20}: {view.status.value}, {price}, "
            f"refPerTok={from_fix(view.ref_per_tok):.9f}, "
            f"maxTradeVolume=${from_fix(view.max_trade_volume):,.0f}"
        )

    def _claim_all(self) -> int:
        total = 0
        for erc20 in self.registry.erc20s():
            collateral = self.registry.get(erc20)
            if collateral is None or collateral.reward_source is None:
                continue
            try:
                total += collateral.claim_rewards()
            except RewardClaimError as e:
                logger.warning(f"{erc20}: reward claim failed: {e}")
        return total

    def poll_once(self) -> list[AssetView]:
        """Run one refresh cycle.

        :returns: A view of every collateral after the refresh.
        """
        self.registry.refresh_all()
        views = self.registry.views()
        for view in views:
            logger.info(self._format_view(view))

        if self.claim_rewards:
            claimed = self._claim_all()
            logger.debug(f"Claimed {claimed} reward units this cycle")
        return views

    async def run(self, iterations: int | None = None) -> None:
        """Run the refresh loop.

        :param iterations: Number of cycles to run, None to run forever.
        """
        logger.info(f"Starting refresh loop for {len(self.registry)} collaterals")

        completed = 0
        while iterations is None or completed < iterations:
            self.poll_once()
            completed += 1
            if iterations is not None and completed >= iterations:
                break
            await asyncio.sleep(self.poll_period)
