"""Chainlink aggregator feed.

Reads ``latestRoundData()`` from an AggregatorV3 contract and rescales the
answer from the feed's own decimals into 18-decimal fixed point.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import Web3

from ..errors import FeedReadError
from ..fixlib import shift_to_fix
from .base import FeedReading, OracleFeed

if TYPE_CHECKING:
    from web3.contract import Contract

logger = logging.getLogger(__name__)

AGGREGATOR_V3_ABI: list[dict] = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "description",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class ChainlinkFeed(OracleFeed):
    """Oracle feed backed by a Chainlink AggregatorV3 contract.

    :ivar address: Checksummed aggregator address.
    :ivar contract: web3 contract instance.
    """

    def __init__(self, w3: Web3, address: str, description: str = "") -> None:
        """Initialize the feed.

        :param w3: Connected Web3 instance.
        :param address: Aggregator (or proxy) address.
        :param description: Optional pair description for logs.
        """
        self.address = Web3.to_checksum_address(address)
        self.description = description
        self.contract: Contract = w3.eth.contract(
            address=self.address, abi=AGGREGATOR_V3_ABI
        )
        self._decimals: int | None = None

    @property
    def decimals(self) -> int:
        """Decimals of the feed's answer, read once and cached."""
        if self._decimals is None:
            self._decimals = int(self.contract.functions.decimals().call())
        return self._decimals

    def latest(self) -> FeedReading:
        """Read ``latestRoundData()``.

        :returns: Reading with the answer rescaled to fixed point.
        :raises FeedReadError: If the contract call fails.
        """
        try:
            round_id, answer, _, updated_at, answered_in_round = (
                self.contract.functions.latestRoundData().call()
            )
            decimals = self.decimals
        except Exception as e:
            logger.debug(f"[chainlink] latestRoundData failed for {self.address}: {e}")
            raise FeedReadError(f"Failed to read feed {self.address}: {e}") from e

        return FeedReading(
            price=shift_to_fix(int(answer), decimals),
            updated_at=int(updated_at),
            round_id=int(round_id),
            answered_in_round=int(answered_in_round),
        )
