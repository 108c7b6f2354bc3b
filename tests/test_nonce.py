"""Tests for the per-address nonce tracker."""

import pytest

from mint_relay.errors import ChainCommunicationError
from mint_relay.nonce import NonceTracker

from conftest import ADDR_A, ADDR_B, FakeChain


@pytest.mark.asyncio
async def test_first_nonce_comes_from_chain():
    chain = FakeChain(tx_count=7)
    assert await NonceTracker(chain).next_nonce(ADDR_A) == 7


@pytest.mark.asyncio
async def test_back_to_back_nonces_increase():
    chain = FakeChain(tx_count=3)
    tracker = NonceTracker(chain)
    first = await tracker.next_nonce(ADDR_A)
    second = await tracker.next_nonce(ADDR_A)
    third = await tracker.next_nonce(ADDR_A.lower())
    assert (first, second, third) == (3, 4, 5)
    assert tracker.peek(ADDR_A) == 6


@pytest.mark.asyncio
async def test_chain_ahead_of_cache_wins():
    chain = FakeChain(tx_count=1)
    tracker = NonceTracker(chain)
    assert await tracker.next_nonce(ADDR_A) == 1
    chain.tx_counts[ADDR_A.lower()] = 10
    assert await tracker.next_nonce(ADDR_A) == 10


@pytest.mark.asyncio
async def test_addresses_are_independent():
    chain = FakeChain(tx_count=0)
    tracker = NonceTracker(chain)
    await tracker.next_nonce(ADDR_A)
    await tracker.next_nonce(ADDR_A)
    assert await tracker.next_nonce(ADDR_B) == 0


@pytest.mark.asyncio
async def test_invalidate_rereads_chain():
    chain = FakeChain(tx_count=5)
    tracker = NonceTracker(chain)
    await tracker.next_nonce(ADDR_A)
    await tracker.next_nonce(ADDR_A)
    tracker.invalidate(ADDR_A)
    assert tracker.peek(ADDR_A) is None
    assert await tracker.next_nonce(ADDR_A) == 5


@pytest.mark.asyncio
async def test_chain_error_propagates():
    chain = FakeChain()
    chain.count_error = ChainCommunicationError("rpc down")
    tracker = NonceTracker(chain)
    with pytest.raises(ChainCommunicationError):
        await tracker.next_nonce(ADDR_A)
    assert tracker.peek(ADDR_A) is None
