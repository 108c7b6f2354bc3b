"""Mint dispatch: build, sign, submit, await receipt or timeout, record.

One call to :meth:`Dispatcher.dispatch` runs up to ``max_retry_count + 1``
attempts. Each attempt walks ``building -> signed -> submitted`` and ends in
``confirmed``, ``timed_out`` or ``rejected``; a retry starts over from
``building`` with a fresh nonce and a fresh signature.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterable

from web3 import Web3

from mint_relay.chain.base import ChainClient, TxReceipt
from mint_relay.config import ChainConfig, DispatchConfig
from mint_relay.errors import (
    ChainCommunicationError,
    RelayError,
    TransactionTimeoutError,
    ValidationError,
    WalletUnavailableError,
    classify_chain_error,
    excerpt,
    is_nonce_pricing_message,
    is_transient,
)
from mint_relay.ledger import TransactionLedger
from mint_relay.logging_config import log_action
from mint_relay.models import TransactionRecord, TxStatus
from mint_relay.nonce import NonceTracker
from mint_relay.wallet.store import WalletStore

logger = logging.getLogger("mint_relay.dispatcher")

MINT_FUNCTION = "mint"
TIMEOUT_MESSAGE = "Transaction timeout"
CANCELLED_MESSAGE = "Dispatch cancelled"


class DispatchState(str, Enum):
    BUILDING = "building"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"


class EventKind(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    RETRYING = "retrying"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchEvent:
    """Sent to the notifier after the matching state has been persisted."""

    kind: EventKind
    address: str
    attempt: int
    max_attempts: int
    tx_hash: str | None = None
    error: str | None = None  # truncated excerpt
    receipt: TxReceipt | None = None


Notifier = Callable[[DispatchEvent], Awaitable[None]]


@dataclass
class AttemptResult:
    """Outcome of one attempt: a receipt or an error, never both."""

    state: DispatchState
    receipt: TxReceipt | None = None
    error: Exception | None = None
    tx_hash: str | None = None

    @property
    def ok(self) -> bool:
        return self.receipt is not None


@dataclass
class DispatchResult:
    address: str
    receipt: TxReceipt | None = None
    error: Exception | None = None
    attempts: int = 0
    tx_hashes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.receipt is not None

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "ok": self.ok,
            "attempts": self.attempts,
            "tx_hash": self.receipt.tx_hash if self.receipt else None,
            "block_number": self.receipt.block_number if self.receipt else None,
            "gas_used": self.receipt.gas_used if self.receipt else None,
            "tx_hashes": list(self.tx_hashes),
            "error": excerpt(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
        }


@dataclass
class BatchResult:
    results: list[DispatchResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


def _short(value: str) -> str:
    return f"{value[:10]}..."


class Dispatcher:
    """Runs mint dispatches against the injected wallet store, nonce
    tracker, ledger and chain client.

    Parameters
    ----------
    notifier:
        Optional async callback receiving :class:`DispatchEvent` objects.
        Its failures are logged and never affect the dispatch.
    sleep:
        Coroutine used for the retry backoff; replaceable in tests.
    """

    def __init__(
        self,
        wallets: WalletStore,
        nonces: NonceTracker,
        ledger: TransactionLedger,
        chain: ChainClient,
        chain_config: ChainConfig,
        dispatch_config: DispatchConfig,
        notifier: Notifier | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.wallets = wallets
        self.nonces = nonces
        self.ledger = ledger
        self.chain = chain
        self.chain_config = chain_config
        self.config = dispatch_config
        self.notifier = notifier
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.config.max_retry_count + 1

    def set_notifier(self, notifier: Notifier | None) -> None:
        self.notifier = notifier

    async def _notify(self, event: DispatchEvent) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier(event)
        except Exception as e:
            logger.error(f"Notifier error on {event.kind.value} for {event.address}: {e}")

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    def build_transaction(self, nonce: int) -> dict:
        return {
            "to": self.chain.contract_address,
            "data": self.chain.encode_call(MINT_FUNCTION),
            "value": 0,
            "gas": self.chain_config.gas_limit,
            "gasPrice": self.chain_config.gas_price,
            "chainId": self.chain_config.chain_id,
            "nonce": nonce,
        }

    async def _attempt(self, address: str, attempt: int) -> AttemptResult:
        # building
        wallet = self.wallets.find(address)
        if wallet is None or not wallet.active:
            return AttemptResult(
                DispatchState.BUILDING,
                error=WalletUnavailableError(f"Wallet {address} not found or inactive"),
            )
        try:
            unlocked = self.wallets.get_wallet(address)
        except RelayError as exc:
            return AttemptResult(DispatchState.BUILDING, error=exc)

        sender = unlocked.address
        log_action("mint_attempt", address=sender, attempt=attempt)
        try:
            nonce = await self.nonces.next_nonce(sender)
        except ChainCommunicationError as exc:
            return AttemptResult(DispatchState.BUILDING, error=exc)

        tx = self.build_transaction(nonce)
        try:
            signed = self.chain.sign_transaction(tx, unlocked.private_key)
        except (TypeError, ValueError) as exc:
            return AttemptResult(
                DispatchState.BUILDING, error=ValidationError(f"Signing failed: {exc}")
            )
        finally:
            del unlocked

        # signed -> submitted
        tx_hash = Web3.to_hex(signed.hash)
        self.ledger.record(
            TransactionRecord(
                hash=tx_hash,
                from_address=sender,
                to_address=tx["to"],
                gas_price=str(tx["gasPrice"]),
                gas_limit=str(tx["gas"]),
            )
        )
        logger.info(f"Submitted {_short(tx_hash)} from {sender} (nonce={nonce}, attempt={attempt})")
        await self._notify(DispatchEvent(
            EventKind.SUBMITTED, sender, attempt, self.max_attempts, tx_hash=tx_hash,
        ))

        try:
            receipt = await asyncio.wait_for(
                self.chain.send_transaction(signed.raw_transaction),
                timeout=self.config.tx_timeout_seconds,
            )
        except asyncio.TimeoutError:
            # The broadcast may still confirm later; it is recorded as failed.
            state = DispatchState.TIMED_OUT
            error: ChainCommunicationError = TransactionTimeoutError(TIMEOUT_MESSAGE)
        except asyncio.CancelledError:
            self.ledger.update_status(tx_hash, TxStatus.FAILED, error=CANCELLED_MESSAGE)
            raise
        except Exception as exc:
            state = DispatchState.REJECTED
            error = classify_chain_error(exc)
        else:
            self.ledger.update_status(
                tx_hash,
                TxStatus.CONFIRMED,
                block_number=receipt.block_number,
                gas_used=receipt.gas_used,
            )
            self.wallets.update_last_used(sender)
            logger.info(f"Confirmed {_short(tx_hash)} in block {receipt.block_number}")
            await self._notify(DispatchEvent(
                EventKind.CONFIRMED, sender, attempt, self.max_attempts,
                tx_hash=tx_hash, receipt=receipt,
            ))
            return AttemptResult(DispatchState.CONFIRMED, receipt=receipt, tx_hash=tx_hash)

        self.ledger.update_status(tx_hash, TxStatus.FAILED, error=str(error))
        if is_nonce_pricing_message(str(error)):
            self.nonces.invalidate(sender)
        return AttemptResult(state, error=error, tx_hash=tx_hash)

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------

    async def dispatch(self, address: str) -> DispatchResult:
        """Mint from *address*, retrying transient failures.

        Never raises for relay errors; the outcome is in the result.
        """
        wallet = self.wallets.find(address)
        if wallet is not None:
            address = wallet.address
        result = DispatchResult(address=address)
        attempt_result: AttemptResult | None = None

        for attempt in range(1, self.max_attempts + 1):
            attempt_result = await self._attempt(address, attempt)
            result.attempts = attempt
            if attempt_result.tx_hash:
                result.tx_hashes.append(attempt_result.tx_hash)
            if attempt_result.ok:
                result.receipt = attempt_result.receipt
                return result

            error = attempt_result.error
            if not is_transient(error) or attempt == self.max_attempts:
                break

            logger.warning(
                f"Attempt {attempt}/{self.max_attempts} for {address} "
                f"{attempt_result.state.value}: {excerpt(error)}; retrying"
            )
            await self._notify(DispatchEvent(
                EventKind.RETRYING, address, attempt, self.max_attempts,
                tx_hash=attempt_result.tx_hash, error=excerpt(error),
            ))
            await self._sleep(self.config.retry_delay_seconds)

        assert attempt_result is not None
        result.error = attempt_result.error
        logger.error(
            f"mint_failed address={address} attempts={result.attempts} "
            f"state={attempt_result.state.value} error={result.error}",
            exc_info=result.error,
        )
        await self._notify(DispatchEvent(
            EventKind.FAILED, address, result.attempts, self.max_attempts,
            tx_hash=attempt_result.tx_hash, error=excerpt(result.error or ""),
        ))
        return result

    async def dispatch_batch(self, addresses: Iterable[str]) -> BatchResult:
        """Dispatch from every address concurrently.

        One address failing never blocks or rolls back the others.
        """
        addresses = list(addresses)
        outcomes = await asyncio.gather(
            *(self.dispatch(a) for a in addresses), return_exceptions=True
        )
        batch = BatchResult()
        for address, outcome in zip(addresses, outcomes):
            if isinstance(outcome, DispatchResult):
                batch.results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"batch_mint_error address={address}: {outcome}", exc_info=outcome)
                batch.results.append(DispatchResult(address=address, error=outcome))
            else:
                raise outcome
        logger.info(f"Batch mint complete: {batch.succeeded}/{batch.total} successful")
        return batch
