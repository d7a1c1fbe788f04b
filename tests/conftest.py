"""Shared fixtures: an in-memory node and baseline chain specs."""
import asyncio
from typing import Dict, List, Optional

import pytest

from chainfork.chain_spec import ChainSpec
from chainfork.errors import RpcError
from chainfork.rpc.metadata import PalletInfo

BLOCK_HASH = "0x" + "ab" * 32


class FakeNode:
    """Node double serving sorted keys in pages and tracking concurrency."""

    def __init__(self, storage: Dict[str, Optional[str]], pallets: Optional[List[PalletInfo]] = None):
        self.storage = storage
        self.pallets = pallets or []
        self.page_requests = []
        self.value_requests = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.fail_on_key: Optional[str] = None
        self.fail_on_page: Optional[int] = None
        self.finalized_head = BLOCK_HASH

    async def _enter(self):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        await asyncio.sleep(0)

    def _leave(self):
        self.in_flight -= 1

    async def get_keys_paged(self, prefix, count, start_key=None, at=None):
        await self._enter()
        try:
            self.page_requests.append((prefix, count, start_key, at))
            if self.fail_on_page is not None and len(self.page_requests) > self.fail_on_page:
                raise RpcError("state_getKeysPaged: boom")
            keys = sorted(k for k in self.storage if k.startswith(prefix))
            if start_key is not None:
                keys = [k for k in keys if k > start_key]
            return keys[:count]
        finally:
            self._leave()

    async def get_storage(self, key, at=None):
        await self._enter()
        try:
            self.value_requests.append((key, at))
            if key == self.fail_on_key:
                raise RpcError("state_getStorage: boom")
            return self.storage.get(key)
        finally:
            self._leave()

    async def get_finalized_head(self):
        return self.finalized_head

    async def get_metadata(self, at=None):
        return self.pallets

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


def make_spec(name="Original", chain_id="original", protocol_id="orig", top=None, **extra) -> ChainSpec:
    document = {
        "name": name,
        "id": chain_id,
        "chainType": "Live",
        "bootNodes": ["/ip4/10.0.0.1/tcp/30333/p2p/12D3KooW"],
        "telemetryEndpoints": None,
        "protocolId": protocol_id,
        "properties": {"tokenSymbol": "TST"},
        "codeSubstitutes": {},
        "genesis": {"raw": {"top": dict(top or {}), "childrenDefault": {}}},
    }
    document.update(extra)
    return ChainSpec.model_validate(document)


@pytest.fixture
def original_spec():
    return make_spec()


@pytest.fixture
def target_spec():
    return make_spec(name="Development", chain_id="dev", protocol_id=None,
                     top={"0x3a636f6465": "0x00", "0x01": "0x02"})
