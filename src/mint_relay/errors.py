"""Exception hierarchy for mint-relay.

Transient errors (:class:`ChainCommunicationError` and its subclasses) are
retried by the dispatcher; everything else surfaces to the caller.
"""

from __future__ import annotations

_NONCE_PRICING_MARKERS = ("nonce", "underpriced", "fee too low")


class RelayError(Exception):
    """Base class for all mint-relay errors."""


class ValidationError(RelayError, ValueError):
    """Malformed address, key, or setting. Never retried."""


class NotFoundError(RelayError, LookupError):
    """A wallet or record is absent."""


class DuplicateWalletError(RelayError):
    """A wallet with the same address is already managed."""


class AuthenticationError(RelayError):
    """A cipher blob failed tag verification (tampered or wrong key)."""


class WalletUnavailableError(RelayError):
    """The wallet named by a dispatch is missing or inactive."""


class StorageError(RelayError):
    """A persisted store file exists but cannot be read."""


class ChainCommunicationError(RelayError):
    """RPC failure or on-chain rejection."""


class TransactionTimeoutError(ChainCommunicationError):
    """No receipt was observed before the configured timeout."""


class NoncePricingError(ChainCommunicationError):
    """The node rejected the transaction for a stale nonce or low fee."""


def is_nonce_pricing_message(message: str) -> bool:
    """Return True if an error message hints at a nonce or fee problem."""
    lowered = message.lower()
    return any(marker in lowered for marker in _NONCE_PRICING_MARKERS)


def classify_chain_error(exc: BaseException) -> ChainCommunicationError:
    """Map an arbitrary chain-library exception onto the relay taxonomy."""
    if isinstance(exc, ChainCommunicationError):
        return exc
    message = str(exc) or exc.__class__.__name__
    if is_nonce_pricing_message(message):
        return NoncePricingError(message)
    return ChainCommunicationError(message)


def is_transient(exc: BaseException) -> bool:
    """Return True for errors the dispatcher retries."""
    return isinstance(exc, ChainCommunicationError)


def excerpt(exc: BaseException | str, limit: int = 100) -> str:
    """Short, single-line error text for notifications."""
    text = str(exc).replace("\n", " ").strip()
    if len(text) > limit:
        return text[:limit] + "..."
    return text
