"""Encrypted wallet store backed by a single JSON file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from mint_relay.errors import DuplicateWalletError, NotFoundError, RelayError, StorageError
from mint_relay.logging_config import log_action
from mint_relay.models import ManagedWallet, utcnow
from mint_relay.storage import read_json_list, write_json_atomic
from mint_relay.wallet.cipher import SecretCipher
from mint_relay.wallet.validation import derive_address, is_valid_private_key, normalize_private_key

logger = logging.getLogger("mint_relay.wallet.store")


@dataclass(frozen=True)
class UnlockedWallet:
    """A wallet together with its decrypted key.

    Handed to the immediate caller only; never stored.
    """

    wallet: ManagedWallet
    private_key: str = field(repr=False)

    @property
    def address(self) -> str:
        return self.wallet.address

    @property
    def active(self) -> bool:
        return self.wallet.active


class WalletStore:
    """Owns the managed wallets and persists them after every mutation.

    Parameters
    ----------
    path:
        Location of the wallet JSON file. Created on first write.
    cipher:
        Cipher used to seal private keys before they reach disk.
    """

    def __init__(self, path: Path, cipher: SecretCipher) -> None:
        self.path = Path(path)
        self.cipher = cipher
        self._wallets: list[ManagedWallet] = self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> list[ManagedWallet]:
        if not self.path.exists():
            return []
        try:
            wallets = [ManagedWallet.model_validate(item) for item in read_json_list(self.path)]
        except (OSError, ValueError, TypeError, PydanticValidationError) as exc:
            raise StorageError(f"Cannot read wallet store {self.path}: {exc}") from exc
        logger.info(f"Loaded {len(wallets)} wallet(s) from {self.path}")
        return wallets

    def _commit(self, wallets: list[ManagedWallet]) -> None:
        """Write *wallets* to disk, then make them the in-memory state."""
        write_json_atomic(
            self.path,
            [w.model_dump(mode="json", by_alias=True) for w in wallets],
        )
        self._wallets = wallets

    def _replace(self, updated: ManagedWallet) -> None:
        self._commit([updated if w.matches(updated.address) else w for w in self._wallets])

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._wallets)

    def find(self, address: str) -> ManagedWallet | None:
        """Wallet metadata for *address* (case-insensitive), without decrypting."""
        for wallet in self._wallets:
            if wallet.matches(address):
                return wallet
        return None

    def get_wallet(self, address: str) -> UnlockedWallet:
        """Return the wallet with its key decrypted on demand.

        Raises :class:`NotFoundError` if the address is not managed and
        :class:`~mint_relay.errors.AuthenticationError` if the key blob does
        not verify.
        """
        wallet = self.find(address)
        if wallet is None:
            raise NotFoundError(f"Wallet {address} not found")
        return UnlockedWallet(wallet=wallet, private_key=self.cipher.decrypt(wallet.encrypted_key))

    def list_wallets(self) -> list[ManagedWallet]:
        return list(self._wallets)

    def list_active(self) -> list[ManagedWallet]:
        return [w for w in self._wallets if w.active]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_wallet(self, raw_key: str, label: str = "") -> str:
        """Encrypt and store a new key. Returns the derived address."""
        key = normalize_private_key(raw_key)
        address = derive_address(key)
        if self.find(address) is not None:
            raise DuplicateWalletError(f"Wallet {address} already exists")

        wallet = ManagedWallet(
            address=address,
            encrypted_key=self.cipher.encrypt(key),
            label=label or f"Wallet {len(self._wallets) + 1}",
            active=True,
        )
        self._commit([*self._wallets, wallet])
        log_action("wallet_added", address=address)
        return address

    def toggle(self, address: str) -> bool:
        """Flip the ``active`` flag and return the new state."""
        wallet = self.find(address)
        if wallet is None:
            raise NotFoundError(f"Wallet {address} not found")
        updated = wallet.model_copy(update={"active": not wallet.active})
        self._replace(updated)
        log_action("wallet_toggled", address=updated.address, active=updated.active)
        return updated.active

    def remove(self, address: str) -> bool:
        """Remove a wallet. Returns False if it was not present."""
        remaining = [w for w in self._wallets if not w.matches(address)]
        if len(remaining) == len(self._wallets):
            return False
        self._commit(remaining)
        log_action("wallet_removed", address=address)
        return True

    def update_last_used(self, address: str, when: datetime | None = None) -> None:
        wallet = self.find(address)
        if wallet is None:
            logger.debug(f"update_last_used: {address} is no longer managed")
            return
        self._replace(wallet.model_copy(update={"last_used": when or utcnow()}))

    def migrate_legacy(self, raw_keys: Iterable[str]) -> int:
        """Import plain keys from an older configuration.

        Invalid and already-present keys are skipped; a failure on one key
        is logged and does not stop the batch. Returns the number added.
        """
        migrated = 0
        for index, raw_key in enumerate(raw_keys):
            if not is_valid_private_key(raw_key or ""):
                logger.warning(f"Invalid wallet key during migration (index={index})")
                continue
            try:
                address = derive_address(raw_key)
                if self.find(address) is not None:
                    continue
                self.add_wallet(raw_key, f"Migrated Wallet {index + 1}")
                migrated += 1
            except (RelayError, OSError) as exc:
                logger.error(f"Wallet migration failed (index={index}): {exc}")
        return migrated
