"""Base exchange-rate source interface and registry.

An exchange-rate source reports how many reference units one wrapped token
is worth (refPerTok before revenue hiding). Contract-backed sources share a
small helper that wraps every call failure in :class:`RateSourceError`.

.. code-block:: python

    @register_rate_source
    class MyRateSource(ContractRateSource):
        name = "mytoken"
        ABI = [...]

        def rate(self) -> int:
            return shift_to_fix(self._call("exchangeRate"), 18)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from web3 import Web3

from ..errors import ConfigInvalidError, RateSourceError
from ..fixlib import FIX_ONE

if TYPE_CHECKING:
    from web3.contract import Contract

logger = logging.getLogger(__name__)


class ExchangeRateSource(ABC):
    """Abstract source of the raw token-to-reference exchange rate.

    :cvar name: Unique identifier used in collateral definitions.
    """

    name: ClassVar[str] = ""

    @abstractmethod
    def rate(self) -> int:
        """Read the current raw exchange rate.

        :returns: Reference units per token in 18-decimal fixed point.
        :raises RateSourceError: If the rate cannot be read.
        """
        pass


class ContractRateSource(ExchangeRateSource):
    """Exchange-rate source read from a single contract.

    :cvar ABI: Minimal ABI for the functions the source calls.
    :ivar address: Checksummed contract address.
    :ivar contract: web3 contract instance.
    """

    ABI: ClassVar[list[dict]] = []

    def __init__(self, w3: Web3 | None = None, address: str | None = None) -> None:
        """Initialize the source.

        :param w3: Connected Web3 instance.
        :param address: Address of the contract exposing the rate.
        :raises ConfigInvalidError: If w3 or address is missing.
        """
        if w3 is None or not address:
            raise ConfigInvalidError(
                f"Rate source '{self.name}' requires a web3 connection and an address"
            )
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract: Contract = w3.eth.contract(address=self.address, abi=self.ABI)

    def _call(self, function: str, *args: Any) -> Any:
        """Call a view function on the contract.

        :param function: Function name.
        :param args: Positional call arguments.
        :returns: Decoded return value.
        :raises RateSourceError: On any call failure.
        """
        try:
            return getattr(self.contract.functions, function)(*args).call()
        except Exception as e:
            logger.debug(f"[{self.name}] {function}() failed for {self.address}: {e}")
            raise RateSourceError(
                f"[{self.name}] {function}() failed for {self.address}: {e}"
            ) from e

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"{type(self).__name__}({self.address!r})"


# Registry of available rate sources (populated by subclass imports)
RATE_SOURCE_REGISTRY: dict[str, type[ExchangeRateSource]] = {}


def register_rate_source(
    cls: type[ExchangeRateSource],
) -> type[ExchangeRateSource]:
    """Decorator to register a rate source class in the global registry.

    :param cls: Rate source class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If the rate source has no name defined.
    """
    if not cls.name:
        raise ValueError(
            f"Rate source {cls.__name__} must define a 'name' class variable"
        )
    RATE_SOURCE_REGISTRY[cls.name] = cls
    return cls


@register_rate_source
class ConstantRateSource(ExchangeRateSource):
    """Rate source for tokens that do not appreciate (e.g., USDC).

    Always reports one reference unit per token.
    """

    name = "constant"

    def __init__(self, w3: Web3 | None = None, address: str | None = None) -> None:
        """Accepts and ignores the contract arguments of the other sources."""
        self.address = address

    def rate(self) -> int:
        """Return exactly one."""
        return FIX_ONE


def get_rate_source(
    name: str, w3: Web3 | None = None, address: str | None = None
) -> ExchangeRateSource:
    """Get a rate source instance by name.

    :param name: Rate source name (e.g., "erc4626", "sfrxeth").
    :param w3: Connected Web3 instance (unused by "constant").
    :param address: Contract address (unused by "constant").
    :returns: Rate source instance.
    :raises ConfigInvalidError: If the name is unknown.
    """
    if name not in RATE_SOURCE_REGISTRY:
        available = ", ".join(sorted(RATE_SOURCE_REGISTRY.keys()))
        raise ConfigInvalidError(
            f"Unknown rate source '{name}'. Available: {available}"
        )
    return RATE_SOURCE_REGISTRY[name](w3=w3, address=address)


def get_available_rate_sources() -> list[str]:
    """Get list of available rate source names.

    :returns: Sorted list of registered rate source names.
    """
    return sorted(RATE_SOURCE_REGISTRY.keys())
