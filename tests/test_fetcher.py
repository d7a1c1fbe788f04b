"""Tests for bounded concurrent value fetching."""
import asyncio

import pytest

from chainfork.errors import MissingStorageValueError, RpcError
from chainfork.limiter import ConcurrencyLimiter
from chainfork.snapshot import fetch_storage_at, fetch_storage_pairs, fetch_values
from tests.conftest import BLOCK_HASH, FakeNode


def _storage(count):
    return {"0x%04x" % i: "0x%04x" % (i * 7) for i in range(count)}


def test_fetch_storage_pairs_returns_full_snapshot():
    node = FakeNode(_storage(50))

    async def run():
        return await fetch_storage_pairs(node, BLOCK_HASH, ConcurrencyLimiter(8), page_size=16)

    pairs = asyncio.run(run())

    assert pairs == node.storage
    assert all(at == BLOCK_HASH for _, at in node.value_requests)


def test_in_flight_requests_never_exceed_cap():
    node = FakeNode(_storage(300))

    async def run():
        limiter = ConcurrencyLimiter(5)
        pairs = await fetch_storage_pairs(node, BLOCK_HASH, limiter, page_size=32)
        return pairs, limiter

    pairs, limiter = asyncio.run(run())

    assert len(pairs) == 300
    assert node.peak_in_flight <= 5
    assert limiter.peak_in_flight <= 5
    # pages: 300 keys / 32 -> 10 pages plus the empty terminator
    assert limiter.total_acquired == 300 + 11


def test_missing_value_aborts_batch():
    storage = _storage(20)
    storage["0x0005"] = None
    node = FakeNode(storage)

    async def run():
        return await fetch_storage_pairs(node, BLOCK_HASH, ConcurrencyLimiter(4))

    with pytest.raises(MissingStorageValueError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.key == "0x0005"
    assert excinfo.value.at == BLOCK_HASH


def test_rpc_error_aborts_and_cancels_pending_fetches():
    node = FakeNode(_storage(200))
    node.fail_on_key = "0x0000"

    async def run():
        keys = sorted(node.storage)
        await fetch_values(node, keys, BLOCK_HASH, ConcurrencyLimiter(2))

    with pytest.raises(RpcError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.stage == "fetch storage values"
    # the failure surfaces long before every key was requested
    assert len(node.value_requests) < 200


def test_fetch_values_with_no_keys():
    async def run():
        return await fetch_values(FakeNode({}), [], BLOCK_HASH, ConcurrencyLimiter(1))

    assert asyncio.run(run()) == {}


def test_fetch_storage_at_resolves_finalized_head():
    node = FakeNode(_storage(3))
    node.finalized_head = "0x" + "cd" * 32

    async def run():
        return await fetch_storage_at(node, None, ConcurrencyLimiter(2))

    pairs = asyncio.run(run())

    assert pairs == node.storage
    assert {at for _, at in node.value_requests} == {node.finalized_head}
    assert {request[3] for request in node.page_requests} == {node.finalized_head}


def test_fetch_storage_at_uses_given_block():
    node = FakeNode(_storage(3))

    async def run():
        return await fetch_storage_at(node, BLOCK_HASH, ConcurrencyLimiter(2))

    asyncio.run(run())
    assert {at for _, at in node.value_requests} == {BLOCK_HASH}


class RecordingProgress:
    def __init__(self):
        self.increments = []
        self.finished = None

    def inc(self, amount=1):
        self.increments.append(amount)

    def finish(self, message="Done"):
        self.finished = message


def test_progress_advances_per_completed_fetch():
    node = FakeNode(_storage(100))
    progress = RecordingProgress()

    async def run():
        keys = sorted(node.storage)
        return await fetch_values(node, keys, BLOCK_HASH, ConcurrencyLimiter(4), progress=progress)

    pairs = asyncio.run(run())

    assert len(pairs) == 100
    assert len(progress.increments) == 100
    assert sum(progress.increments) == 100
    assert progress.finished == "Done"
