"""Liquid-staking token exchange rates.

All three report an 18-decimal rate directly from a single view function:

- sfrxETH: ``pricePerShare()`` (frxETH per sfrxETH)
- rETH: ``getExchangeRate()`` (ETH per rETH)
- wstETH: ``stEthPerToken()`` (stETH per wstETH)
"""

from ..fixlib import shift_to_fix
from .base import ContractRateSource, register_rate_source


def _rate_abi(function: str) -> list[dict]:
    return [
        {
            "inputs": [],
            "name": function,
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        }
    ]


@register_rate_source
class SfrxEthRateSource(ContractRateSource):
    """frxETH per sfrxETH."""

    name = "sfrxeth"
    ABI = _rate_abi("pricePerShare")

    def rate(self) -> int:
        return shift_to_fix(int(self._call("pricePerShare")), 18)


@register_rate_source
class RethRateSource(ContractRateSource):
    """ETH per rETH."""

    name = "reth"
    ABI = _rate_abi("getExchangeRate")

    def rate(self) -> int:
        return shift_to_fix(int(self._call("getExchangeRate")), 18)


@register_rate_source
class WstEthRateSource(ContractRateSource):
    """stETH per wstETH."""

    name = "wsteth"
    ABI = _rate_abi("stEthPerToken")

    def rate(self) -> int:
        return shift_to_fix(int(self._call("stEthPerToken")), 18)
