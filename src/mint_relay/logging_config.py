"""
Logging setup for mint-relay.

Two console formats are available:
  - **human** – single-line, readable
  - **json**  – newline-delimited JSON for log aggregators

Every handler carries :class:`RedactSecretsFilter`, which masks anything that
looks like a raw private key before it is written.

Usage:
    from mint_relay.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="combined.log")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_PRIVATE_KEY_RE = re.compile(r"(0x)?[a-fA-F0-9]{64}")
REDACTED = "[PRIVATE_KEY]"

_action_logger = logging.getLogger("mint_relay.actions")


def redact(text: str) -> str:
    return _PRIVATE_KEY_RE.sub(REDACTED, text)


class RedactSecretsFilter(logging.Filter):
    """Rewrite records so 64-hex-digit strings never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            record.fields = {
                k: redact(v) if isinstance(v, str) else v for k, v in fields.items()
            }
        return True


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            log_obj.update(fields)
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname:<7}] {record.name}: {record.getMessage()}"
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict) and fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info and record.exc_info[1]:
            line += "\n" + redact(self.formatException(record.exc_info))
        return line


def log_action(action: str, **fields: object) -> None:
    """Record an operator-visible action (wallet added, mint attempt, ...)."""
    _action_logger.info(action, extra={"fields": {"action": action, **fields}})


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger for the whole process.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` or ``"json"`` for the console handler.
    log_file : str, optional
        If given, records are also appended to this file, always as JSON.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_JSONFormatter() if fmt == "json" else _HumanFormatter())
    console.addFilter(RedactSecretsFilter())
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(_JSONFormatter())
        fh.addFilter(RedactSecretsFilter())
        root.addHandler(fh)

    # web3 and httpx are chatty at DEBUG
    for noisy in ("web3", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.INFO))
