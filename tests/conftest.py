"""Shared fixtures: an in-memory chain, temp-file stores and a wired relay."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from eth_account import Account
from web3 import Web3

from mint_relay.chain.base import ChainClient, TxReceipt
from mint_relay.config import (
    ChainConfig,
    DispatchConfig,
    RelayConfig,
    SecurityConfig,
    StorageConfig,
)
from mint_relay.ledger import TransactionLedger
from mint_relay.nonce import NonceTracker
from mint_relay.service import MintRelay
from mint_relay.wallet.cipher import SecretCipher
from mint_relay.wallet.store import WalletStore

PASSPHRASE = "test-passphrase"
CONTRACT = Web3.to_checksum_address("0x1aa689f843077dca043df7d0dc0b3f62dbc6180d")

KEY_A = "0x" + "11" * 32
KEY_B = "0x" + "22" * 32
KEY_C = "0x" + "33" * 32
ADDR_A = Account.from_key(KEY_A).address
ADDR_B = Account.from_key(KEY_B).address
ADDR_C = Account.from_key(KEY_C).address

HANG = "hang"


class FakeChain(ChainClient):
    """Scriptable chain: each send consumes the next entry of ``outcomes``.

    An entry may be a :class:`TxReceipt`, an exception to raise, or
    :data:`HANG` to block until the caller's timeout fires. With no entries
    left every send confirms.
    """

    def __init__(self, tx_count: int = 0) -> None:
        self.default_count = tx_count
        self.tx_counts: dict[str, int] = {}
        self.count_error: Exception | None = None
        self.outcomes: list[Any] = []
        self.sent: list[bytes] = []
        self.count_calls = 0
        self.values: dict[str, Any] = {"totalSupply": 250, "MAX_SUPPLY": 1000}
        self.closed = False
        self._block = 100

    @property
    def contract_address(self) -> str:
        return CONTRACT

    async def get_transaction_count(self, address: str) -> int:
        self.count_calls += 1
        if self.count_error is not None:
            raise self.count_error
        return self.tx_counts.get(address.lower(), self.default_count)

    async def send_transaction(self, raw_tx: bytes) -> TxReceipt:
        self.sent.append(bytes(raw_tx))
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome == HANG:
            await asyncio.sleep(3600)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, TxReceipt):
            return outcome
        self._block += 1
        return TxReceipt(
            tx_hash=Web3.to_hex(Web3.keccak(raw_tx)),
            block_number=self._block,
            gas_used=21_000,
        )

    async def call(self, function_name: str) -> Any:
        value = self.values[function_name]
        if isinstance(value, BaseException):
            raise value
        return value

    def encode_call(self, function_name: str) -> str:
        return "0x1249c58b"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def cipher():
    return SecretCipher(PASSPHRASE)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def wallet_store(tmp_path, cipher):
    return WalletStore(tmp_path / "secure_wallets.json", cipher)


@pytest.fixture
def ledger(tmp_path):
    return TransactionLedger(tmp_path / "tx_history.json")


@pytest.fixture
def nonces(chain):
    return NonceTracker(chain)


@pytest.fixture
def config(tmp_path):
    return RelayConfig(
        chain=ChainConfig(contract_address=CONTRACT),
        security=SecurityConfig(master_password=PASSPHRASE),
        dispatch=DispatchConfig(tx_timeout_ms=200, max_retry_count=2, retry_delay_seconds=0),
        storage=StorageConfig(
            wallet_file=str(tmp_path / "secure_wallets.json"),
            history_file=str(tmp_path / "tx_history.json"),
        ),
    )


@pytest.fixture
def events():
    return []


@pytest.fixture
def relay(config, chain, events):
    async def collect(event):
        events.append(event)

    return MintRelay.from_config(config, chain=chain, notifier=collect)
