"""Per-address nonce sequencing."""

from __future__ import annotations

import logging

from mint_relay.chain.base import ChainClient

logger = logging.getLogger("mint_relay.nonce")


class NonceTracker:
    """Hands out nonces, reconciled against the chain's transaction count.

    The cache lives in memory only. Losing it is safe: the next lookup takes
    the chain count again.
    """

    def __init__(self, chain: ChainClient) -> None:
        self.chain = chain
        self._next: dict[str, int] = {}

    async def next_nonce(self, address: str) -> int:
        """Return the nonce for the next transaction from *address*.

        Uses the larger of the chain count and the locally cached value, so
        back-to-back sends work before earlier ones confirm. Chain errors
        propagate unchanged.
        """
        on_chain = await self.chain.get_transaction_count(address)
        key = address.lower()
        cached = self._next.get(key, on_chain)
        nonce = max(on_chain, cached)
        self._next[key] = nonce + 1
        logger.debug(f"nonce for {address}: chain={on_chain} cached={cached} -> {nonce}")
        return nonce

    def invalidate(self, address: str) -> None:
        """Forget the cached value so the next call re-reads the chain."""
        if self._next.pop(address.lower(), None) is not None:
            logger.info(f"Nonce cache invalidated for {address}")

    def peek(self, address: str) -> int | None:
        return self._next.get(address.lower())
