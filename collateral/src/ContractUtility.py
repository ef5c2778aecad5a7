"""ContractUtility: Web3 initialization for collateral reads and reward claims."""

import os

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder


class ContractUtility:
    """Utility for the Web3 connection.

    :ivar rpc_url: RPC endpoint URL.
    :ivar w3: Configured Web3 instance.
    :ivar account: Local signing account, None when read-only.
    """

    DEFAULT_RPC_URL = "http://localhost:8545"

    def __init__(self, rpc_url: str | None = None, private_key: str | None = None) -> None:
        """Initialize the contract utility.

        :param rpc_url: RPC endpoint. Falls back to the RPC_URL env var, then
            to a local node.
        :param private_key: Optional key used to sign reward claims.
        """
        self.rpc_url = rpc_url or os.environ.get("RPC_URL") or self.DEFAULT_RPC_URL
        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url))

        self.account: LocalAccount | None = None
        if private_key:
            self.account = Account.from_key(private_key)
            self.w3.middleware_onion.add(
                SignAndSendRawMiddlewareBuilder.build(self.account)
            )
            self.w3.eth.default_account = self.account.address

    @property
    def can_sign(self) -> bool:
        """Whether transactions can be submitted through this connection."""
        return self.account is not None
