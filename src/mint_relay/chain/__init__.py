"""Chain collaborator: abstract client, contract binding and web3 backend."""

from mint_relay.chain.base import ChainClient, TxReceipt
from mint_relay.chain.contract import DEFAULT_ABI, ContractBinding, load_contract_binding

__all__ = [
    "ChainClient",
    "TxReceipt",
    "DEFAULT_ABI",
    "ContractBinding",
    "load_contract_binding",
]
