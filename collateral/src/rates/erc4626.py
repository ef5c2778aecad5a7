"""ERC4626 vault share rate.

Rate: ``convertToAssets(10 ** shareDecimals)``, expressed in the decimals of
the vault's underlying asset.
"""

import logging

from ..errors import RateSourceError
from ..fixlib import shift_to_fix
from .base import ContractRateSource, register_rate_source

logger = logging.getLogger(__name__)

DECIMALS_ABI: dict = {
    "inputs": [],
    "name": "decimals",
    "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
    "stateMutability": "view",
    "type": "function",
}

ERC4626_ABI: list[dict] = [
    DECIMALS_ABI,
    {
        "inputs": [],
        "name": "asset",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "shares", "type": "uint256"}],
        "name": "convertToAssets",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@register_rate_source
class ERC4626RateSource(ContractRateSource):
    """Assets per share of an ERC4626 vault.

    Share and asset decimals are read on first use and cached.
    """

    name = "erc4626"
    ABI = ERC4626_ABI

    _share_decimals: int | None = None
    _asset_decimals: int | None = None

    def _load_decimals(self) -> None:
        share_decimals = int(self._call("decimals"))
        asset_address = self._call("asset")
        asset = self.w3.eth.contract(address=asset_address, abi=[DECIMALS_ABI])
        try:
            asset_decimals = int(asset.functions.decimals().call())
        except Exception as e:
            raise RateSourceError(
                f"[{self.name}] decimals() failed for asset {asset_address}: {e}"
            ) from e

        self._share_decimals = share_decimals
        self._asset_decimals = asset_decimals
        logger.debug(
            f"[erc4626] {self.address}: share decimals {share_decimals}, "
            f"asset decimals {asset_decimals}"
        )

    def rate(self) -> int:
        """Read assets per whole share."""
        if self._share_decimals is None or self._asset_decimals is None:
            self._load_decimals()
        assets = self._call("convertToAssets", 10**self._share_decimals)
        return shift_to_fix(int(assets), self._asset_decimals)
