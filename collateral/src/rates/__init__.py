"""
Exchange-rate sources for wrapped, interest-bearing tokens.

Usage:
    from collateral.src.rates import get_rate_source, get_available_rate_sources

    # Get list of available rate sources
    available = get_available_rate_sources()
    # ['constant', 'erc4626', 'gearbox_diesel', 'reth', 'sfrxeth', 'wsteth']

    # Create a rate source instance
    source = get_rate_source("sfrxeth", w3=w3, address=SFRX_ETH)
    ref_per_tok = source.rate()
"""

# Import base classes and utilities
from .base import (
    RATE_SOURCE_REGISTRY,
    ConstantRateSource,
    ContractRateSource,
    ExchangeRateSource,
    get_available_rate_sources,
    get_rate_source,
    register_rate_source,
)

# Import all rate source implementations to trigger registration
from .erc4626 import ERC4626RateSource
from .gearbox import GearboxDieselRateSource
from .staking import RethRateSource, SfrxEthRateSource, WstEthRateSource

__all__ = [
    # Base classes
    "ExchangeRateSource",
    "ContractRateSource",
    # Registry functions
    "register_rate_source",
    "get_rate_source",
    "get_available_rate_sources",
    "RATE_SOURCE_REGISTRY",
    # Rate source implementations
    "ConstantRateSource",
    "ERC4626RateSource",
    "GearboxDieselRateSource",
    "RethRateSource",
    "SfrxEthRateSource",
    "WstEthRateSource",
]
