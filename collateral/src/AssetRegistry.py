"""AssetRegistry: Read facade over many registered collaterals.

Every portfolio-level read is a fallible per-asset step followed by a
filtering pass. An asset that fails to refresh, cannot be priced, or has
defaulted is reported and zero-weighted; it never stops the traversal.

.. code-block:: python

    >>> registry = AssetRegistry()
    >>> registry.register(usdc_collateral)
    True
    >>> registry.refresh_all()
    {'0xA0b8...': <CollateralStatus.SOUND: 'sound'>}
    >>> value = registry.backing_value({"0xA0b8...": to_fix(1000)})
    >>> value.skipped
    {}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from web3 import Web3

from .Collateral import Collateral
from .DefaultMonitor import CollateralStatus
from .fixlib import RoundingMode, mul_fix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetView:
    """Snapshot of one registered collateral.

    :ivar erc20: Token address.
    :ivar status: Soundness status.
    :ivar low: Lower price bound, None if unavailable.
    :ivar high: Upper price bound, None if unavailable.
    :ivar ref_per_tok: Exposed reference units per token.
    :ivar max_trade_volume: Maximum tradable volume in the unit of account.
    :ivar error: Why no price is available, if it is not.
    """

    erc20: str
    status: CollateralStatus
    low: int | None
    high: int | None
    ref_per_tok: int
    max_trade_volume: int
    error: str | None = None

    @property
    def priced(self) -> bool:
        """Whether the asset contributes to portfolio values."""
        return self.low is not None and self.high is not None and self.low > 0


@dataclass
class BackingValue:
    """Total value of a set of balances in the unit of account.

    :ivar low: Sum of ``balance * low`` over priced assets.
    :ivar high: Sum of ``balance * high`` over priced assets.
    :ivar counted: Token addresses included in the sums.
    :ivar skipped: Token addresses left out, with the reason.
    """

    low: int = 0
    high: int = 0
    counted: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)


class AssetRegistry:
    """Registry of collaterals keyed by checksummed token address."""

    def __init__(self) -> None:
        self._assets: dict[str, Collateral] = {}

    @staticmethod
    def _key(erc20: str) -> str:
        return Web3.to_checksum_address(erc20)

    def register(self, collateral: Collateral) -> bool:
        """Register a collateral.

        :param collateral: Collateral to register.
        :returns: False if a collateral for the same token is already registered.
        """
        key = self._key(collateral.erc20)
        if key in self._assets:
            return False
        self._assets[key] = collateral
        logger.info(f"Registered {collateral!r}")
        return True

    def swap_registered(self, collateral: Collateral) -> Collateral:
        """Replace the collateral registered for the same token.

        Replacing the instance is the only way back from DEFAULT.

        :param collateral: New collateral instance.
        :returns: The replaced instance.
        :raises KeyError: If nothing is registered for the token.
        """
        key = self._key(collateral.erc20)
        old = self._assets[key]
        self._assets[key] = collateral
        logger.info(f"Swapped {old!r} for {collateral!r}")
        return old

    def unregister(self, erc20: str) -> Collateral:
        """Remove a collateral.

        :raises KeyError: If nothing is registered for the token.
        """
        collateral = self._assets.pop(self._key(erc20))
        logger.info(f"Unregistered {collateral!r}")
        return collateral

    def get(self, erc20: str) -> Collateral | None:
        return self._assets.get(self._key(erc20))

    def erc20s(self) -> list[str]:
        """Registered token addresses in registration order."""
        return list(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, erc20: object) -> bool:
        return isinstance(erc20, str) and self._key(erc20) in self._assets

    def refresh_all(self) -> dict[str, CollateralStatus | None]:
        """Refresh every collateral.

        :returns: Status per token after the refresh, None where the refresh
            itself raised.
        """
        statuses: dict[str, CollateralStatus | None] = {}
        for key, collateral in self._assets.items():
            try:
                statuses[key] = collateral.refresh()
            except Exception as e:
                logger.error(f"{key}: refresh failed: {e}")
                statuses[key] = None
        return statuses

    def _view(self, key: str, collateral: Collateral) -> AssetView:
        try:
            result = collateral.price()
            return AssetView(
                erc20=key,
                status=collateral.status(),
                low=result.low,
                high=result.high,
                ref_per_tok=collateral.ref_per_tok(),
                max_trade_volume=collateral.max_trade_volume,
                error=result.error,
            )
        except Exception as e:
            logger.warning(f"{key}: price read failed: {e}")
            return AssetView(
                erc20=key,
                status=collateral.status(),
                low=None,
                high=None,
                ref_per_tok=collateral.ref_per_tok(),
                max_trade_volume=collateral.max_trade_volume,
                error="read_failed",
            )

    def views(self) -> list[AssetView]:
        """Snapshot every registered collateral."""
        return [self._view(key, collateral) for key, collateral in self._assets.items()]

    def backing_value(self, balances: dict[str, int]) -> BackingValue:
        """Value token balances, skipping anything without a usable price.

        :param balances: Token address to balance, in 18-decimal fixed point.
        :returns: Summed low and high values plus the skipped tokens.
        """
        value = BackingValue()
        views = {view.erc20: view for view in self.views()}

        for erc20, balance in balances.items():
            key = self._key(erc20)
            view = views.get(key)
            if view is None:
                value.skipped[key] = "unregistered"
                continue
            if not view.priced:
                value.skipped[key] = view.error or "zero_price"
                continue

            value.low += mul_fix(balance, view.low, RoundingMode.FLOOR)
            value.high += mul_fix(balance, view.high, RoundingMode.CEIL)
            value.counted.append(key)

        if value.skipped:
            logger.debug(f"Backing value skipped {value.skipped}")
        return value
