"""Tests for dispatch event notifiers."""

import json
import logging

import httpx
import pytest

from mint_relay.chain.base import TxReceipt
from mint_relay.config import RelayConfig
from mint_relay.dispatcher import DispatchEvent, EventKind
from mint_relay.notify import LogNotifier, TelegramNotifier, fan_out, telegram_from_config

from conftest import ADDR_A

TX = "0x" + "ab" * 32


def _event(kind, **kw):
    return DispatchEvent(kind, ADDR_A, kw.pop("attempt", 1), 3, **kw)


@pytest.fixture
def notifier():
    return TelegramNotifier("test-token", 42, explorer_url="https://scan.example/tx/")


@pytest.fixture
def telegram_requests(monkeypatch):
    sent = []
    status = {"code": 200}

    def handler(request):
        sent.append(request)
        return httpx.Response(status["code"], json={"ok": status["code"] < 400})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda **kw: real_client(transport=httpx.MockTransport(handler))
    )
    return sent, status


def test_format_confirmed_has_explorer_link(notifier):
    text = notifier.format_event(
        _event(EventKind.CONFIRMED, tx_hash=TX, receipt=TxReceipt(TX, 10, 21000))
    )
    assert "Mint successful" in text
    assert f"https://scan.example/tx/{TX}" in text


def test_format_retrying_and_failed(notifier):
    retry = notifier.format_event(_event(EventKind.RETRYING, error="Transaction timeout"))
    assert "Retrying (1/2)" in retry
    failed = notifier.format_event(_event(EventKind.FAILED, attempt=3, error="boom"))
    assert "Attempts: 3/3" in failed
    assert "`boom`" in failed


@pytest.mark.asyncio
async def test_send_message_posts_to_bot_api(notifier, telegram_requests):
    sent, _ = telegram_requests
    await notifier(_event(EventKind.SUBMITTED, tx_hash=TX))

    assert len(sent) == 1
    assert sent[0].url.path == "/bottest-token/sendMessage"
    body = json.loads(sent[0].content)
    assert body["chat_id"] == 42
    assert body["parse_mode"] == "Markdown"


@pytest.mark.asyncio
async def test_send_message_raises_on_api_error(notifier, telegram_requests):
    _, status = telegram_requests
    status["code"] = 401
    with pytest.raises(RuntimeError, match="401"):
        await notifier.send_message("hi")


@pytest.mark.asyncio
async def test_log_notifier(caplog):
    with caplog.at_level(logging.INFO, logger="mint_relay.notify"):
        await LogNotifier()(_event(EventKind.FAILED, error="boom"))
    assert caplog.records[-1].levelno == logging.WARNING
    assert "failed" in caplog.records[-1].getMessage()


@pytest.mark.asyncio
async def test_fan_out_survives_failing_sink():
    received = []

    async def broken(event):
        raise RuntimeError("down")

    async def ok(event):
        received.append(event.kind)

    combined = fan_out(broken, None, ok)
    await combined(_event(EventKind.SUBMITTED))
    assert received == [EventKind.SUBMITTED]


def test_fan_out_shortcuts():
    assert fan_out(None, None) is None
    sink = LogNotifier()
    assert fan_out(None, sink) is sink


def test_telegram_from_config():
    config = RelayConfig()
    assert telegram_from_config(config) is None
    config.telegram.token = "t"
    config.telegram.admin_id = 99
    sink = telegram_from_config(config)
    assert sink.chat_id == 99
    assert sink.explorer_url == config.chain.explorer_url
