"""Tests for paged storage key enumeration."""
import asyncio

import pytest

from chainfork.errors import RpcError
from chainfork.limiter import ConcurrencyLimiter
from chainfork.progress import ProgressReporter
from chainfork.snapshot import KeyEnumerator
from tests.conftest import BLOCK_HASH, FakeNode


class CountingProgress(ProgressReporter):
    def __init__(self):
        self.total = 0
        self.finished = None

    def inc(self, amount=1):
        self.total += amount

    def finish(self, message="Done"):
        self.finished = message


def _storage(count):
    return {"0x%04x" % i: "0x%02x" % (i % 256) for i in range(count)}


def _enumerate(node, page_size, progress=None):
    async def run():
        enumerator = KeyEnumerator(node, BLOCK_HASH, ConcurrencyLimiter(4),
                                   page_size=page_size, progress=progress)
        return await enumerator.collect(), enumerator

    return asyncio.run(run())


def test_enumeration_yields_all_keys_in_order():
    node = FakeNode(_storage(23))
    keys, enumerator = _enumerate(node, page_size=5)

    assert keys == sorted(node.storage)
    # 5 full pages (last one partial) plus the terminating empty page
    assert enumerator.pages_fetched == 6
    assert len(node.page_requests) == 6


def test_cursor_is_last_key_of_previous_page():
    node = FakeNode(_storage(10))
    _enumerate(node, page_size=4)

    cursors = [request[2] for request in node.page_requests]
    assert cursors == [None, "0x0003", "0x0007", "0x0009"]
    assert all(request[3] == BLOCK_HASH for request in node.page_requests)
    assert all(request[1] == 4 for request in node.page_requests)


def test_enumeration_stops_on_first_empty_page():
    node = FakeNode({})
    keys, enumerator = _enumerate(node, page_size=512)

    assert keys == []
    assert enumerator.pages_fetched == 1


def test_exact_multiple_of_page_size_needs_empty_page():
    node = FakeNode(_storage(8))
    keys, enumerator = _enumerate(node, page_size=4)

    assert len(keys) == 8
    assert enumerator.pages_fetched == 3


def test_progress_counts_keys():
    progress = CountingProgress()
    _enumerate(FakeNode(_storage(9)), page_size=4, progress=progress)

    assert progress.total == 9
    assert progress.finished == "Done"


def test_page_failure_is_fatal():
    node = FakeNode(_storage(20))
    node.fail_on_page = 2

    with pytest.raises(RpcError) as excinfo:
        _enumerate(node, page_size=5)

    assert excinfo.value.stage == "enumerate storage keys"
    assert len(node.page_requests) == 3


def test_enumerator_is_one_shot():
    async def run():
        enumerator = KeyEnumerator(FakeNode(_storage(3)), BLOCK_HASH, ConcurrencyLimiter(1))
        await enumerator.collect()
        with pytest.raises(RuntimeError):
            enumerator.__aiter__()

    asyncio.run(run())
