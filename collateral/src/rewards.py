"""Reward sources for wrapped tokens with a separate reward stream.

A reward source is an explicit capability: ``claim(recipient)`` performs the
claim on behalf of the recipient and returns how much reached it. Claiming
never touches exchange-rate tracking or soundness state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from web3 import Web3

from .errors import RewardClaimError

if TYPE_CHECKING:
    from web3.contract import Contract

    from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)

ERC20_BALANCE_ABI: list[dict] = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class RewardSource(ABC):
    """Abstract source of claimable rewards.

    :ivar reward_token: Address of the token rewards are paid in.
    """

    reward_token: str | None = None

    @abstractmethod
    def claim(self, recipient: str) -> int:
        """Claim all accrued rewards for ``recipient``.

        :param recipient: Account receiving the rewards.
        :returns: Amount received, in the reward token's base units.
        :raises RewardClaimError: If the claim fails.
        """
        pass


class ContractRewardSource(RewardSource):
    """Rewards claimed by calling a no-argument function on a contract.

    The claimed amount is the recipient's reward-token balance increase
    across the claim transaction.

    :ivar address: Contract the claim function lives on.
    :ivar claim_function: Name of the claim function (default "claimRewards").
    """

    def __init__(
        self,
        w3: Web3,
        address: str,
        reward_token: str,
        submitter: TxSubmitter,
        claim_function: str = "claimRewards",
    ) -> None:
        """Initialize the reward source.

        :param w3: Connected Web3 instance.
        :param address: Contract exposing the claim function.
        :param reward_token: Reward token address.
        :param submitter: Submits the claim transaction.
        :param claim_function: Name of the claim function.
        """
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.reward_token = Web3.to_checksum_address(reward_token)
        self.submitter = submitter
        self.claim_function = claim_function
        self.contract: Contract = w3.eth.contract(
            address=self.address,
            abi=[
                {
                    "inputs": [],
                    "name": claim_function,
                    "outputs": [],
                    "stateMutability": "nonpayable",
                    "type": "function",
                }
            ],
        )
        self.token: Contract = w3.eth.contract(
            address=self.reward_token, abi=ERC20_BALANCE_ABI
        )

    def _balance(self, account: str) -> int:
        return int(self.token.functions.balanceOf(account).call())

    def claim(self, recipient: str) -> int:
        """Submit the claim from the signing account and measure what arrived.

        The claim function pays its caller, so the recipient must be the
        submitter's signing account.
        """
        recipient = Web3.to_checksum_address(recipient)
        sender = self.submitter.account
        if not sender:
            raise RewardClaimError(f"No signing account to call {self.claim_function}()")
        sender = Web3.to_checksum_address(sender)
        if sender != recipient:
            raise RewardClaimError(
                f"{self.claim_function}() pays the signing account {sender}, "
                f"not {recipient}"
            )

        try:
            before = self._balance(recipient)
            tx_params = getattr(self.contract.functions, self.claim_function)().build_transaction(
                {"from": sender, "gasPrice": self.w3.eth.gas_price}
            )
            self.submitter.submit_tx(tx_params)
            after = self._balance(recipient)
        except RewardClaimError:
            raise
        except Exception as e:
            raise RewardClaimError(
                f"{self.claim_function}() on {self.address} failed: {e}"
            ) from e

        amount = max(after - before, 0)
        logger.debug(f"Claimed {amount} of {self.reward_token} from {self.address}")
        return amount
