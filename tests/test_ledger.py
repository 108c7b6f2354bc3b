"""Tests for the bounded transaction ledger."""

import json

import pytest

from mint_relay.ledger import TransactionLedger
from mint_relay.models import TransactionRecord, TxStatus

from conftest import ADDR_A, ADDR_B


def _record(n: int, sender: str = ADDR_A) -> TransactionRecord:
    return TransactionRecord(
        hash=f"0x{n:064x}",
        from_address=sender,
        to_address="0x" + "ab" * 20,
        gas_price="1000000000",
        gas_limit="500000",
    )


def test_record_is_newest_first_and_persisted(ledger, tmp_path):
    ledger.record(_record(1))
    ledger.record(_record(2))
    assert [r.hash for r in ledger.query()] == [_record(2).hash, _record(1).hash]

    data = json.loads(ledger.path.read_text())
    assert data[0]["hash"] == _record(2).hash
    assert data[0]["from"] == ADDR_A
    assert data[0]["status"] == "pending"
    assert data[0]["gasPrice"] == "1000000000"

    reopened = TransactionLedger(ledger.path)
    assert len(reopened) == 2


def test_capacity_evicts_oldest(tmp_path):
    ledger = TransactionLedger(tmp_path / "h.json", capacity=100)
    for n in range(101):
        ledger.record(_record(n))
    assert len(ledger) == 100
    assert ledger.get(_record(0).hash) is None
    assert ledger.query(limit=1)[0].hash == _record(100).hash
    assert len(json.loads(ledger.path.read_text())) == 100


def test_update_status_confirmed(ledger):
    ledger.record(_record(1))
    assert ledger.update_status(_record(1).hash, TxStatus.CONFIRMED, block_number=42, gas_used=21000)
    rec = TransactionLedger(ledger.path).get(_record(1).hash)
    assert rec.status is TxStatus.CONFIRMED
    assert rec.block_number == 42
    assert rec.gas_used == 21000


def test_update_status_failed_keeps_error(ledger):
    ledger.record(_record(1))
    ledger.update_status(_record(1).hash, TxStatus.FAILED, error="Transaction timeout")
    rec = ledger.get(_record(1).hash)
    assert rec.status is TxStatus.FAILED
    assert rec.error == "Transaction timeout"


def test_terminal_status_is_final(ledger):
    ledger.record(_record(1))
    ledger.update_status(_record(1).hash, TxStatus.FAILED, error="boom")
    assert ledger.update_status(_record(1).hash, TxStatus.CONFIRMED, block_number=1) is False
    assert ledger.get(_record(1).hash).status is TxStatus.FAILED


def test_update_missing_record(ledger):
    assert ledger.update_status(_record(9).hash, TxStatus.CONFIRMED) is False


def test_query_filters_by_sender(ledger):
    ledger.record(_record(1, ADDR_A))
    ledger.record(_record(2, ADDR_B))
    ledger.record(_record(3, ADDR_A))
    hashes = [r.hash for r in ledger.query(ADDR_A.lower(), limit=10)]
    assert hashes == [_record(3).hash, _record(1).hash]
    assert len(ledger.query(limit=2)) == 2


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "h.json"
    path.write_text("[{broken")
    assert len(TransactionLedger(path)) == 0


def test_loads_legacy_numbers(tmp_path):
    path = tmp_path / "h.json"
    path.write_text(json.dumps([{
        "hash": _record(1).hash,
        "from": ADDR_A,
        "to": "unknown",
        "timestamp": "2024-03-01T12:00:00.000Z",
        "status": "confirmed",
        "gasPrice": 1000000000,
        "gasLimit": 500000,
        "blockNumber": 12,
        "gasUsed": 30000,
    }]))
    rec = TransactionLedger(path).query()[0]
    assert rec.gas_price == "1000000000"
    assert rec.status is TxStatus.CONFIRMED


def test_capacity_must_be_positive(tmp_path):
    with pytest.raises(ValueError):
        TransactionLedger(tmp_path / "h.json", capacity=0)


def _fail_writes(monkeypatch):
    def fail(path, data):
        raise OSError("disk full")

    monkeypatch.setattr("mint_relay.ledger.write_json_atomic", fail)


def test_failed_write_does_not_record(ledger, monkeypatch):
    ledger.record(_record(1))
    _fail_writes(monkeypatch)
    with pytest.raises(OSError):
        ledger.record(_record(2))
    assert [r.hash for r in ledger.query()] == [_record(1).hash]


def test_failed_write_keeps_pending_status(ledger, monkeypatch):
    ledger.record(_record(1))
    _fail_writes(monkeypatch)
    with pytest.raises(OSError):
        ledger.update_status(_record(1).hash, TxStatus.CONFIRMED, block_number=3)
    rec = ledger.get(_record(1).hash)
    assert rec.status is TxStatus.PENDING
    assert rec.block_number is None
