"""Pydantic models for the persisted wallet and transaction files.

Attributes are snake_case; the on-disk names are the camelCase aliases used
by the legacy file format so existing ``secure_wallets.json`` and
``tx_history.json`` files load unchanged.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return a.lower() == b.lower()


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------

class CipherBlob(BaseModel):
    """AES-GCM output for one private key, hex encoded."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    iv: str
    ciphertext: str = Field(alias="encryptedData")
    auth_tag: str = Field(alias="authTag")


class ManagedWallet(BaseModel):
    """One entry of the wallet store file."""

    model_config = ConfigDict(populate_by_name=True)

    address: str
    encrypted_key: CipherBlob = Field(alias="encryptedKey")
    label: str = ""
    active: bool = True
    last_used: Optional[datetime] = Field(default=None, alias="lastUsed")
    added_at: datetime = Field(default_factory=utcnow, alias="addedAt")

    def matches(self, address: str) -> bool:
        return same_address(self.address, address)

    def public_view(self) -> dict:
        """Metadata safe to hand to a front end (no key material)."""
        return {
            "address": self.address,
            "label": self.label,
            "active": self.active,
            "last_used": self.last_used,
            "added_at": self.added_at,
        }


class TransactionRecord(BaseModel):
    """One entry of the transaction history file."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    hash: str
    from_address: str = Field(alias="from")
    to_address: str = Field(default="unknown", alias="to")
    submitted_at: datetime = Field(default_factory=utcnow, alias="timestamp")
    status: TxStatus = TxStatus.PENDING
    gas_price: str = Field(default="unknown", alias="gasPrice")  # wei, kept as string
    gas_limit: str = Field(default="unknown", alias="gasLimit")
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    gas_used: Optional[int] = Field(default=None, alias="gasUsed")
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TxStatus.PENDING

    def sent_by(self, address: str) -> bool:
        return same_address(self.from_address, address)
