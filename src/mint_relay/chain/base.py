"""Abstract chain collaborator used by the nonce tracker and dispatcher."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.datastructures import SignedTransaction


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ChainClient(ABC):
    """Capabilities the dispatch engine needs from a chain.

    Network methods must raise
    :class:`~mint_relay.errors.ChainCommunicationError` (or a subclass) on
    failure. Signing is local and shared by every implementation.
    """

    @property
    @abstractmethod
    def contract_address(self) -> str:
        """Address of the contract that mint transactions target."""

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Chain-reported transaction count (nonce) for *address*."""

    @abstractmethod
    async def send_transaction(self, raw_tx: bytes) -> TxReceipt:
        """Broadcast a signed transaction and wait for its receipt."""

    @abstractmethod
    async def call(self, function_name: str) -> Any:
        """Call a read-only contract method with no arguments."""

    @abstractmethod
    def encode_call(self, function_name: str) -> str:
        """Calldata for a no-argument contract method."""

    def sign_transaction(self, tx: dict, private_key: str) -> SignedTransaction:
        return Account.sign_transaction(tx, private_key)

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
