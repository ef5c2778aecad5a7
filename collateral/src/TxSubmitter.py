"""TxSubmitter: Transaction submission for state-changing collaborator calls."""

from abc import ABC, abstractmethod
from typing import Any

from web3 import Web3
from web3.types import TxParams

from .errors import RewardClaimError


class TxSubmitter(ABC):
    """Abstract base class for transaction submission.

    Reward claims are the only writes the engine performs; reads never go
    through a submitter.

    :ivar account: Address transactions are sent from, None if unknown.
    """

    account: str | None = None

    @abstractmethod
    def submit_tx(self, tx: TxParams) -> Any:
        """Submit a transaction and wait for it to be mined.

        :param tx: Transaction parameters.
        :returns: Transaction receipt.
        """
        pass


class Web3TxSubmitter(TxSubmitter):
    """Submits transactions directly through a Web3 connection.

    The connection must be able to sign for its default account, e.g. via
    the signing middleware installed by
    :class:`~collateral.src.ContractUtility.ContractUtility`.

    :ivar w3: Web3 instance for transaction submission.
    :ivar account: Signing account, the default account of ``w3`` unless given.
    :ivar receipt_timeout: Seconds to wait for the receipt.
    """

    def __init__(
        self, w3: Web3, account: str | None = None, receipt_timeout: float = 120.0
    ) -> None:
        """Initialize the submitter.

        :param w3: Web3 instance with a signing default account.
        :param account: Signing account (default: ``w3.eth.default_account``).
        :param receipt_timeout: Seconds to wait for the receipt (default: 120).
        """
        self.w3 = w3
        self.account = account or w3.eth.default_account or None
        self.receipt_timeout = receipt_timeout

    def submit_tx(self, tx: TxParams) -> Any:
        """Send a transaction and wait for its receipt.

        :param tx: Transaction parameters.
        :returns: The transaction receipt.
        :raises RewardClaimError: If the transaction reverted.
        """
        tx_hash = self.w3.eth.send_transaction(tx)
        tx_receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )

        if tx_receipt["status"] != 1:
            raise RewardClaimError(f"Transaction {tx_hash.hex()} reverted")
        return tx_receipt
