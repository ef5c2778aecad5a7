"""Notifications emitted by a collateral."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .DefaultMonitor import CollateralStatus


@dataclass(frozen=True)
class CollateralStatusChanged:
    """Emitted by ``refresh()`` when the status transitions.

    :ivar erc20: Token address of the collateral.
    :ivar old_status: Status before the refresh.
    :ivar new_status: Status after the refresh.
    :ivar reason: Why the transition happened (e.g., "peg_deviation").
    :ivar timestamp: Unix timestamp of the refresh.
    """

    erc20: str
    old_status: CollateralStatus
    new_status: CollateralStatus
    reason: str
    timestamp: int


@dataclass(frozen=True)
class RewardsClaimed:
    """Emitted by ``claim_rewards()``, also when nothing was claimed.

    :ivar erc20: Token address of the collateral.
    :ivar reward_token: Address of the reward token, None if there is none.
    :ivar amount: Amount forwarded to the holder, in the token's base units.
    """

    erc20: str
    reward_token: str | None
    amount: int


CollateralEvent = CollateralStatusChanged | RewardsClaimed
EventListener = Callable[[CollateralEvent], None]
