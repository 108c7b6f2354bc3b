"""Format checks for addresses, private keys and gas settings."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from eth_account import Account
from web3 import Web3

from mint_relay.errors import ValidationError

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_KEY_RE = re.compile(r"^[a-fA-F0-9]{64}$")

MIN_GAS_PRICE_WEI = Web3.to_wei(Decimal("0.1"), "gwei")
MAX_GAS_PRICE_WEI = Web3.to_wei(10, "gwei")
MIN_GAS_LIMIT = 21_000
MAX_GAS_LIMIT = 1_000_000


def is_valid_address(address: str) -> bool:
    return bool(_ADDRESS_RE.match(address or ""))


def is_valid_private_key(key: str) -> bool:
    """True for 64 hex characters, with or without a ``0x`` prefix."""
    if not key:
        return False
    clean = key[2:] if key.startswith("0x") else key
    return bool(_KEY_RE.match(clean))


def normalize_private_key(key: str) -> str:
    """Return the key with a ``0x`` prefix, raising on a bad format."""
    key = (key or "").strip()
    if not is_valid_private_key(key):
        raise ValidationError("Invalid private key format")
    return key if key.startswith("0x") else f"0x{key}"


def derive_address(key: str) -> str:
    """Checksummed address for a private key."""
    normalized = normalize_private_key(key)
    try:
        return Account.from_key(normalized).address
    except Exception as exc:
        # 64 hex chars outside the secp256k1 scalar range; eth-keys raises its own type
        raise ValidationError("Invalid private key format") from exc


def checksum_address(address: str) -> str:
    if not is_valid_address(address):
        raise ValidationError(f"Invalid wallet address: {address!r}")
    return Web3.to_checksum_address(address)


def sanitize_input(value: object) -> str:
    """Strip angle brackets and surrounding whitespace from user input."""
    return re.sub(r"[<>]", "", str(value)).strip()


def parse_gas_price(value: int | str) -> int:
    """Gas price in wei. Integers are wei; decimal strings are gwei."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    try:
        return Web3.to_wei(Decimal(text), "gwei")
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid gas price: {value!r}") from exc


def validate_gas_settings(gas_price: int | str, gas_limit: int) -> tuple[int, int]:
    """Check gas settings against the allowed bounds.

    Returns ``(gas_price_wei, gas_limit)``.
    """
    price = parse_gas_price(gas_price)
    if price < MIN_GAS_PRICE_WEI or price > MAX_GAS_PRICE_WEI:
        raise ValidationError("Gas price must be between 0.1 and 10 Gwei")
    limit = int(gas_limit)
    if limit < MIN_GAS_LIMIT or limit > MAX_GAS_LIMIT:
        raise ValidationError(
            f"Gas limit must be between {MIN_GAS_LIMIT} and {MAX_GAS_LIMIT}"
        )
    return price, limit
