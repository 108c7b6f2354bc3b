"""Bounded, newest-first transaction history persisted as JSON."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from mint_relay.models import TransactionRecord, TxStatus
from mint_relay.storage import read_json_list, write_json_atomic

logger = logging.getLogger("mint_relay.ledger")

DEFAULT_CAPACITY = 100


class TransactionLedger:
    """Append-only history of dispatch attempts and their outcomes.

    Records are kept newest first. Once more than ``capacity`` records exist
    the oldest is dropped, so status updates for evicted records are lost.
    Every change is written to disk first and only then applied in memory,
    so a failed write leaves the previous state in place.
    """

    def __init__(self, path: Path, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Ledger capacity must be positive")
        self.path = Path(path)
        self.capacity = capacity
        self._records: list[TransactionRecord] = self._load()

    def _load(self) -> list[TransactionRecord]:
        try:
            records = [TransactionRecord.model_validate(item) for item in read_json_list(self.path)]
        except (OSError, ValueError, TypeError, PydanticValidationError) as exc:
            logger.error(f"Error loading transaction history from {self.path}: {exc}")
            return []
        if records:
            logger.info(f"Transaction history loaded ({len(records)} records)")
        return records[: self.capacity]

    def _commit(self, records: list[TransactionRecord]) -> None:
        write_json_atomic(
            self.path,
            [r.model_dump(mode="json", by_alias=True) for r in records],
        )
        self._records = records

    def __len__(self) -> int:
        return len(self._records)

    def record(self, tx: TransactionRecord) -> None:
        """Insert *tx* at the front and evict beyond capacity."""
        self._commit([tx, *self._records][: self.capacity])

    def get(self, tx_hash: str) -> TransactionRecord | None:
        for rec in self._records:
            if rec.hash.lower() == tx_hash.lower():
                return rec
        return None

    def update_status(
        self,
        tx_hash: str,
        status: TxStatus,
        *,
        block_number: Optional[int] = None,
        gas_used: Optional[int] = None,
        error: Optional[str] = None,
    ) -> bool:
        """Move a pending record to its final status.

        Returns False, after logging, when the record is gone (evicted) or
        has already reached a final status.
        """
        rec = self.get(tx_hash)
        if rec is None:
            logger.warning(f"update_status: {tx_hash[:10]}... not in history (evicted?)")
            return False
        if rec.is_terminal:
            logger.warning(
                f"update_status: {tx_hash[:10]}... already {rec.status.value}, "
                f"ignoring {status.value}"
            )
            return False

        changes: dict = {"status": status}
        if block_number is not None:
            changes["block_number"] = block_number
        if gas_used is not None:
            changes["gas_used"] = gas_used
        if error is not None:
            changes["error"] = error
        updated = rec.model_copy(update=changes)
        self._commit([updated if r is rec else r for r in self._records])
        return True

    def query(self, address: str | None = None, limit: int = 10) -> list[TransactionRecord]:
        """Newest-first records, optionally only those sent by *address*."""
        records = self._records
        if address:
            records = [r for r in records if r.sent_by(address)]
        return list(records[: max(limit, 0)])
