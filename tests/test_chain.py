"""Tests for contract binding, error classification and signing."""

import json

import pytest
from eth_account import Account
from web3 import Web3

from mint_relay.chain import DEFAULT_ABI, load_contract_binding
from mint_relay.chain.web3_client import Web3ChainClient
from mint_relay.config import ChainConfig
from mint_relay.errors import (
    ChainCommunicationError,
    NoncePricingError,
    TransactionTimeoutError,
    ValidationError,
    classify_chain_error,
    excerpt,
    is_transient,
)

from conftest import ADDR_A, CONTRACT, KEY_A, FakeChain


class TestContractBinding:
    def test_default_binding(self, tmp_path):
        binding = load_contract_binding(None, CONTRACT.lower())
        assert binding.address == CONTRACT
        assert binding.function_names() == {"mint", "totalSupply", "MAX_SUPPLY"}
        assert load_contract_binding(tmp_path / "absent.json", CONTRACT).abi == DEFAULT_ABI

    def test_file_override(self, tmp_path):
        path = tmp_path / "contract.json"
        path.write_text(json.dumps({"address": ADDR_A.lower(), "abi": DEFAULT_ABI[:1]}))
        binding = load_contract_binding(path, CONTRACT)
        assert binding.address == ADDR_A
        assert binding.function_names() == {"mint"}

    @pytest.mark.parametrize(
        "content",
        ["{broken", "[]", json.dumps({"abi": "nope"}), json.dumps({"address": "0x12"})],
    )
    def test_invalid_file(self, tmp_path, content):
        path = tmp_path / "contract.json"
        path.write_text(content)
        with pytest.raises(ValidationError):
            load_contract_binding(path, CONTRACT)


class TestWeb3ChainClient:
    def test_encodes_mint_selector(self):
        client = Web3ChainClient(ChainConfig(), load_contract_binding(None, CONTRACT))
        assert client.contract_address == CONTRACT
        assert client.encode_call("mint") == "0x1249c58b"


class TestErrors:
    def test_classify(self):
        assert isinstance(classify_chain_error(ValueError("nonce too low")), NoncePricingError)
        assert isinstance(
            classify_chain_error(ValueError("replacement transaction underpriced")),
            NoncePricingError,
        )
        generic = classify_chain_error(ConnectionError("reset"))
        assert type(generic) is ChainCommunicationError
        timeout = TransactionTimeoutError("Transaction timeout")
        assert classify_chain_error(timeout) is timeout

    def test_transient(self):
        assert is_transient(TransactionTimeoutError("t"))
        assert not is_transient(ValidationError("bad"))

    def test_excerpt(self):
        assert excerpt("a\nb") == "a b"
        assert excerpt("x" * 150) == "x" * 100 + "..."


def test_signing_is_local():
    chain = FakeChain()
    tx = {
        "to": CONTRACT,
        "data": "0x1249c58b",
        "value": 0,
        "gas": 500_000,
        "gasPrice": 1_000_000_000,
        "chainId": 10143,
        "nonce": 0,
    }
    signed = chain.sign_transaction(tx, KEY_A)
    assert Account.recover_transaction(signed.raw_transaction) == ADDR_A
    assert Web3.keccak(signed.raw_transaction) == signed.hash
