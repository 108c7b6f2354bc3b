"""Tests for address, key and gas validation helpers."""

import pytest
from web3 import Web3

from mint_relay.errors import ValidationError
from mint_relay.wallet.validation import (
    checksum_address,
    derive_address,
    is_valid_address,
    is_valid_private_key,
    normalize_private_key,
    parse_gas_price,
    sanitize_input,
    validate_gas_settings,
)

from conftest import ADDR_A, KEY_A


@pytest.mark.parametrize(
    "address,expected",
    [
        (ADDR_A, True),
        (ADDR_A.lower(), True),
        ("0x" + "g" * 40, False),
        ("0x1234", False),
        (ADDR_A[2:], False),
        ("", False),
    ],
)
def test_is_valid_address(address, expected):
    assert is_valid_address(address) is expected


@pytest.mark.parametrize(
    "key,expected",
    [
        (KEY_A, True),
        (KEY_A[2:], True),
        (KEY_A[:-1], False),
        ("0x" + "zz" * 32, False),
        ("", False),
    ],
)
def test_is_valid_private_key(key, expected):
    assert is_valid_private_key(key) is expected


def test_normalize_adds_prefix():
    assert normalize_private_key(KEY_A[2:]) == KEY_A
    assert normalize_private_key(f"  {KEY_A}  ") == KEY_A


def test_normalize_rejects_garbage():
    with pytest.raises(ValidationError):
        normalize_private_key("not-a-key")


def test_derive_address_is_checksummed():
    assert derive_address(KEY_A[2:]) == ADDR_A
    assert Web3.is_checksum_address(derive_address(KEY_A))


def test_derive_address_rejects_zero_key():
    with pytest.raises(ValidationError):
        derive_address("0x" + "00" * 32)


def test_checksum_address():
    assert checksum_address(ADDR_A.lower()) == ADDR_A
    with pytest.raises(ValidationError):
        checksum_address("0xnope")


def test_sanitize_input():
    assert sanitize_input("  <b>label</b> ") == "blabel/b"


@pytest.mark.parametrize(
    "value,expected",
    [
        (1_000_000_000, 1_000_000_000),
        ("1000000000", 1_000_000_000),
        ("1", 1),
        ("1.5", 1_500_000_000),
        ("0.1", 100_000_000),
    ],
)
def test_parse_gas_price(value, expected):
    assert parse_gas_price(value) == expected


def test_parse_gas_price_rejects_text():
    with pytest.raises(ValidationError):
        parse_gas_price("cheap")


def test_gas_bounds():
    assert validate_gas_settings("1.0", 500_000) == (1_000_000_000, 500_000)
    with pytest.raises(ValidationError):
        validate_gas_settings("0.01", 500_000)
    with pytest.raises(ValidationError):
        validate_gas_settings("11.0", 500_000)
    with pytest.raises(ValidationError):
        validate_gas_settings("1.0", 20_000)
    with pytest.raises(ValidationError):
        validate_gas_settings("1.0", 1_000_001)
