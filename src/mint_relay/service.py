"""MintRelay - owns the managers and exposes the front-end command surface.

Every command validates its input, performs the operation and returns a
:class:`CommandResult`. Formatting for a particular chat or terminal is left
to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from mint_relay.chain.base import ChainClient
from mint_relay.chain.contract import load_contract_binding
from mint_relay.config import RelayConfig
from mint_relay.dispatcher import Dispatcher, Notifier
from mint_relay.errors import RelayError, ValidationError
from mint_relay.ledger import TransactionLedger
from mint_relay.models import TransactionRecord
from mint_relay.nonce import NonceTracker
from mint_relay.wallet.cipher import SecretCipher
from mint_relay.wallet.store import WalletStore
from mint_relay.wallet.validation import is_valid_address, is_valid_private_key, sanitize_input

logger = logging.getLogger("mint_relay.service")

MAX_QUERY_LIMIT = 100

COMMANDS: dict[str, str] = {
    "mint": "Start minting with all active wallets",
    "mintwallet": "Mint from a specific wallet: /mintwallet [address]",
    "wallets": "List all configured wallets",
    "addwallet": "Add a new wallet: /addwallet [privateKey] [label]",
    "togglewallet": "Enable/disable a wallet: /togglewallet [address]",
    "removewallet": "Remove a wallet: /removewallet [address]",
    "status": "Check contract supply",
    "history": "View recent transactions: /history [limit]",
    "wallethistory": "View wallet transactions: /wallethistory [address]",
}


@dataclass
class CommandResult:
    ok: bool
    command: str
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None

    @classmethod
    def success(cls, command: str, **data: Any) -> CommandResult:
        return cls(ok=True, command=command, data=data)

    @classmethod
    def failure(cls, command: str, exc: Exception | str, **data: Any) -> CommandResult:
        return cls(
            ok=False,
            command=command,
            data=data,
            error=str(exc),
            error_type=type(exc).__name__ if isinstance(exc, Exception) else None,
        )


def _record_view(rec: TransactionRecord) -> dict:
    return rec.model_dump(mode="json")


def _check_address(address: str) -> str:
    address = sanitize_input(address)
    if not is_valid_address(address):
        raise ValidationError("Invalid wallet address")
    return address


def _check_limit(limit: int) -> int:
    if not 1 <= int(limit) <= MAX_QUERY_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_QUERY_LIMIT}")
    return int(limit)


class MintRelay:
    """The dispatch engine plus the commands a front end can invoke."""

    def __init__(
        self,
        config: RelayConfig,
        wallets: WalletStore,
        ledger: TransactionLedger,
        chain: ChainClient,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.wallets = wallets
        self.ledger = ledger
        self.chain = chain
        self.nonces = NonceTracker(chain)
        self.dispatcher = Dispatcher(
            wallets=wallets,
            nonces=self.nonces,
            ledger=ledger,
            chain=chain,
            chain_config=config.chain,
            dispatch_config=config.dispatch,
            notifier=notifier,
        )

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        chain: ChainClient | None = None,
        notifier: Notifier | None = None,
    ) -> MintRelay:
        """Wire up all managers from *config*.

        If *chain* is omitted a :class:`~mint_relay.chain.web3_client.Web3ChainClient`
        is built from the chain settings and optional contract file.
        """
        cipher = SecretCipher(config.security.master_password)
        wallets = WalletStore(Path(config.storage.wallet_file), cipher)
        ledger = TransactionLedger(
            Path(config.storage.history_file), capacity=config.storage.history_capacity
        )
        if chain is None:
            from mint_relay.chain.web3_client import Web3ChainClient

            binding = load_contract_binding(
                config.chain.contract_file, config.chain.contract_address
            )
            chain = Web3ChainClient(config.chain, binding)
        logger.info(
            f"Mint relay ready: {len(wallets)} wallet(s), {len(ledger)} history record(s), "
            f"chain {config.chain.chain_id}"
        )
        return cls(config, wallets, ledger, chain, notifier=notifier)

    async def shutdown(self) -> None:
        await self.chain.close()

    def is_authorized(self, user_id: int | str) -> bool:
        """True if *user_id* is the configured administrator."""
        admin = self.config.telegram.admin_id
        try:
            return admin != 0 and int(user_id) == admin
        except (TypeError, ValueError):
            return False

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def help(self) -> CommandResult:
        return CommandResult.success("help", commands=dict(COMMANDS))

    async def mint_all(self) -> CommandResult:
        active = self.wallets.list_active()
        if not active:
            return CommandResult.failure(
                "mint", "No active wallets configured. Add one with addwallet."
            )
        batch = await self.dispatcher.dispatch_batch(w.address for w in active)
        return CommandResult(ok=batch.failed == 0, command="mint", data=batch.to_dict(),
                             error=None if batch.failed == 0 else f"{batch.failed} mint(s) failed")

    async def mint_one(self, address: str) -> CommandResult:
        try:
            address = _check_address(address)
        except ValidationError as exc:
            return CommandResult.failure("mintwallet", exc)
        result = await self.dispatcher.dispatch(address)
        if result.ok:
            return CommandResult.success("mintwallet", **result.to_dict())
        return CommandResult.failure("mintwallet", result.error or "mint failed", **result.to_dict())

    def list_wallets(self) -> CommandResult:
        wallets = [w.public_view() for w in self.wallets.list_wallets()]
        return CommandResult.success("wallets", wallets=wallets, count=len(wallets))

    def add_wallet(self, raw_key: str, label: str = "") -> CommandResult:
        raw_key = (raw_key or "").strip()
        if not is_valid_private_key(raw_key):
            return CommandResult.failure("addwallet", ValidationError("Invalid private key format"))
        label = sanitize_input(label)
        try:
            address = self.wallets.add_wallet(raw_key, label)
        except RelayError as exc:
            return CommandResult.failure("addwallet", exc)
        wallet = self.wallets.find(address)
        return CommandResult.success("addwallet", address=address, label=wallet.label if wallet else label)

    def toggle_wallet(self, address: str) -> CommandResult:
        try:
            address = _check_address(address)
            active = self.wallets.toggle(address)
        except RelayError as exc:
            return CommandResult.failure("togglewallet", exc)
        return CommandResult.success("togglewallet", address=address, active=active)

    def remove_wallet(self, address: str) -> CommandResult:
        try:
            address = _check_address(address)
        except ValidationError as exc:
            return CommandResult.failure("removewallet", exc)
        if not self.wallets.remove(address):
            return CommandResult.failure("removewallet", "Wallet not found", address=address)
        return CommandResult.success("removewallet", address=address)

    def import_legacy(self, raw_keys: Iterable[str]) -> CommandResult:
        keys = [k.strip() for k in raw_keys if k and k.strip()]
        migrated = self.wallets.migrate_legacy(keys)
        return CommandResult.success("import", migrated=migrated, submitted=len(keys))

    async def supply_status(self) -> CommandResult:
        try:
            total, maximum = await asyncio.gather(
                self.chain.call("totalSupply"), self.chain.call("MAX_SUPPLY")
            )
        except RelayError as exc:
            logger.error(f"Error fetching supply: {exc}")
            return CommandResult.failure("status", exc)
        total, maximum = int(total), int(maximum)
        percent = round(total / maximum * 100, 2) if maximum else 0.0
        return CommandResult.success(
            "status", total=total, max=maximum, remaining=maximum - total, percent=percent
        )

    def history(self, limit: int = 5) -> CommandResult:
        try:
            limit = _check_limit(limit)
        except (ValidationError, TypeError, ValueError) as exc:
            return CommandResult.failure("history", exc)
        records = [_record_view(r) for r in self.ledger.query(limit=limit)]
        return CommandResult.success("history", records=records, count=len(records))

    def wallet_history(self, address: str, limit: int = 10) -> CommandResult:
        try:
            address = _check_address(address)
            limit = _check_limit(limit)
        except (ValidationError, TypeError, ValueError) as exc:
            return CommandResult.failure("wallethistory", exc)
        records = [_record_view(r) for r in self.ledger.query(address, limit=limit)]
        return CommandResult.success(
            "wallethistory", address=address, records=records, count=len(records)
        )
