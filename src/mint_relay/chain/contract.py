"""Contract binding: address and ABI of the mint contract."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from mint_relay.errors import ValidationError
from mint_relay.wallet.validation import checksum_address

logger = logging.getLogger("mint_relay.chain.contract")

DEFAULT_ABI: list[dict] = [
    {
        "inputs": [],
        "name": "mint",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "MAX_SUPPLY",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass(frozen=True)
class ContractBinding:
    address: str
    abi: list[dict] = field(default_factory=lambda: list(DEFAULT_ABI))

    def function_names(self) -> set[str]:
        return {item.get("name", "") for item in self.abi if item.get("type") == "function"}


def load_contract_binding(path: str | Path | None, default_address: str) -> ContractBinding:
    """Read an optional ``{address, abi}`` JSON file.

    Falls back to *default_address* with :data:`DEFAULT_ABI` when *path* is
    unset or does not exist. Either key may be omitted from the file.
    """
    if path is None or not Path(path).exists():
        return ContractBinding(address=checksum_address(default_address))

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValidationError(f"Cannot read contract config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Contract config {path} must be a JSON object")

    abi = data.get("abi", DEFAULT_ABI)
    if not isinstance(abi, list):
        raise ValidationError(f"Contract config {path}: 'abi' must be a list")

    binding = ContractBinding(
        address=checksum_address(data.get("address", default_address)),
        abi=abi,
    )
    logger.info(f"Contract binding loaded from {path}: {binding.address}")
    return binding
