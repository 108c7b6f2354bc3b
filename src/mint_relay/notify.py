"""Notification sinks for dispatch events.

The dispatcher calls a notifier only after the matching state is on disk, so
anything a user reads here is already in the history file.
"""

from __future__ import annotations

import logging

import httpx

from mint_relay.config import RelayConfig
from mint_relay.dispatcher import DispatchEvent, EventKind, Notifier

logger = logging.getLogger("mint_relay.notify")

TELEGRAM_API = "https://api.telegram.org"


def _short(value: str | None) -> str:
    return f"{value[:10]}..." if value else "-"


class LogNotifier:
    """Writes each event to the ``mint_relay.notify`` logger."""

    async def __call__(self, event: DispatchEvent) -> None:
        level = logging.WARNING if event.kind in (EventKind.RETRYING, EventKind.FAILED) else logging.INFO
        logger.log(
            level,
            f"{event.kind.value}: {event.address} attempt {event.attempt}/{event.max_attempts}"
            + (f" tx={_short(event.tx_hash)}" if event.tx_hash else "")
            + (f" error={event.error}" if event.error else ""),
        )


class TelegramNotifier:
    """Posts dispatch events to a Telegram chat through the Bot HTTP API.

    Parameters
    ----------
    token:
        Bot token.
    chat_id:
        Chat that receives the messages (usually the administrator).
    explorer_url:
        Prefix that turns a transaction hash into an explorer link.
    """

    def __init__(self, token: str, chat_id: int | str, explorer_url: str = "") -> None:
        self.token = token
        self.chat_id = chat_id
        self.explorer_url = explorer_url

    def format_event(self, event: DispatchEvent) -> str:
        if event.kind is EventKind.SUBMITTED:
            return f"⏳ Processing mint from `{_short(event.address)}`"
        if event.kind is EventKind.CONFIRMED:
            link = f"[View on Explorer]({self.explorer_url}{event.tx_hash})" if event.tx_hash else ""
            return f"✅ *Mint successful!*\nFrom: `{event.address}`\n{link}".rstrip()
        if event.kind is EventKind.RETRYING:
            return (
                f"🔄 Retrying ({event.attempt}/{event.max_attempts - 1})...\n"
                f"Error: {event.error}"
            )
        return (
            f"❌ *Transaction Failed*\nFrom: `{event.address}`\n"
            f"Attempts: {event.attempt}/{event.max_attempts}\n"
            f"Error: `{event.error}`"
        )

    async def send_message(self, text: str) -> dict:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                f"{TELEGRAM_API}/bot{self.token}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": "Markdown",
                    "disable_web_page_preview": True,
                },
                timeout=30.0,
            )
        if resp.status_code >= 400:
            raise RuntimeError(f"Telegram API error ({resp.status_code}): {resp.text[:200]}")
        return resp.json()

    async def __call__(self, event: DispatchEvent) -> None:
        await self.send_message(self.format_event(event))


def fan_out(*notifiers: Notifier | None) -> Notifier | None:
    """Combine notifiers into one; each receives every event in order.

    A failing sink is logged and does not stop the ones after it.
    """
    sinks = [n for n in notifiers if n is not None]
    if not sinks:
        return None
    if len(sinks) == 1:
        return sinks[0]

    async def _notify_all(event: DispatchEvent) -> None:
        for sink in sinks:
            try:
                await sink(event)
            except Exception as e:
                logger.error(f"Notification sink {sink!r} failed: {e}")

    return _notify_all


def telegram_from_config(config: RelayConfig) -> TelegramNotifier | None:
    """A Telegram sink for the configured admin chat, or None when unset."""
    tg = config.telegram
    if not tg.token or not tg.admin_id:
        return None
    return TelegramNotifier(tg.token, tg.admin_id, explorer_url=config.chain.explorer_url)
