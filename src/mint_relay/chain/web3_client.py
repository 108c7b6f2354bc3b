"""web3.py implementation of :class:`~mint_relay.chain.base.ChainClient`."""

from __future__ import annotations

import logging
from typing import Any

from web3 import AsyncWeb3, Web3
from web3.middleware import ExtraDataToPOAMiddleware

from mint_relay.chain.base import ChainClient, TxReceipt
from mint_relay.chain.contract import ContractBinding
from mint_relay.config import ChainConfig
from mint_relay.errors import ChainCommunicationError, classify_chain_error

logger = logging.getLogger("mint_relay.chain.web3")


class Web3ChainClient(ChainClient):
    """Talks to one EVM chain through an async HTTP provider.

    Parameters
    ----------
    config:
        RPC endpoint and chain id.
    binding:
        Contract that mint and supply calls go to.
    receipt_timeout:
        Upper bound for web3's own receipt polling. The dispatcher applies
        its configured timeout on top of this.
    """

    def __init__(
        self,
        config: ChainConfig,
        binding: ContractBinding,
        receipt_timeout: float = 600.0,
        poll_latency: float = 1.0,
    ) -> None:
        self.config = config
        self.binding = binding
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        # Non-mainnet chains put extra data in block headers.
        if config.chain_id != 1:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        self._contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(binding.address),
            abi=binding.abi,
        )

    @property
    def contract_address(self) -> str:
        return self._contract.address

    async def get_transaction_count(self, address: str) -> int:
        try:
            return await self.w3.eth.get_transaction_count(
                Web3.to_checksum_address(address)
            )
        except Exception as exc:
            raise classify_chain_error(exc) from exc

    async def send_transaction(self, raw_tx: bytes) -> TxReceipt:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_tx)
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_latency,
            )
        except Exception as exc:
            raise classify_chain_error(exc) from exc

        result = TxReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            status=int(receipt.get("status", 1)),
        )
        if not result.succeeded:
            raise ChainCommunicationError(
                f"Transaction {result.tx_hash} reverted in block {result.block_number}"
            )
        return result

    async def call(self, function_name: str) -> Any:
        try:
            return await getattr(self._contract.functions, function_name)().call()
        except Exception as exc:
            raise classify_chain_error(exc) from exc

    def encode_call(self, function_name: str) -> str:
        return self._contract.encode_abi(function_name)

    async def close(self) -> None:
        provider = self.w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
