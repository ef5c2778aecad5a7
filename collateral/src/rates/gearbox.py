"""Gearbox diesel token rate.

Endpoint: ``PoolService.getDieselRate_RAY()``
Precision: RAY (27 decimals), underlying per diesel token.
"""

from ..fixlib import shift_to_fix
from .base import ContractRateSource, register_rate_source

RAY_DECIMALS = 27


@register_rate_source
class GearboxDieselRateSource(ContractRateSource):
    """Underlying per diesel token, read from the Gearbox pool service.

    The configured address is the pool service, not the diesel token.
    """

    name = "gearbox_diesel"
    ABI = [
        {
            "inputs": [],
            "name": "getDieselRate_RAY",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        }
    ]

    def rate(self) -> int:
        """Read the diesel rate and drop the extra RAY precision."""
        return shift_to_fix(int(self._call("getDieselRate_RAY")), RAY_DECIMALS)
