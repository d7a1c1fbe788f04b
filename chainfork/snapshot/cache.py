"""On-disk cache of a full storage snapshot."""
import asyncio
import json
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from ..config.types import StorageCacheOption
from ..errors import SnapshotCacheError
from ..fsutil import atomic_write_text

logger = structlog.get_logger()

StoragePairs = Dict[str, str]

HEX_PATTERN = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")


def _is_hex(value: Any) -> bool:
    return isinstance(value, str) and HEX_PATTERN.fullmatch(value) is not None


class SnapshotCache:
    """A JSON object mapping hex keys to hex values, stored at ``path``."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def _read(self) -> StoragePairs:
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise SnapshotCacheError(f"cannot read {self.path}: {e}", "load snapshot cache") from e
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SnapshotCacheError(f"{self.path} is not valid JSON: {e}", "load snapshot cache") from e
        if not isinstance(data, dict):
            raise SnapshotCacheError(f"{self.path} does not hold a key/value object", "load snapshot cache")
        for key, value in data.items():
            if not (_is_hex(key) and _is_hex(value)):
                raise SnapshotCacheError(
                    f"{self.path} has a non-hex entry for key {key!r}", "load snapshot cache"
                )
        return data

    def _write(self, pairs: StoragePairs) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(self.path, json.dumps(pairs))
        except OSError as e:
            raise SnapshotCacheError(f"cannot write {self.path}: {e}", "save snapshot cache") from e

    async def load(self) -> StoragePairs:
        loop = asyncio.get_running_loop()
        pairs = await loop.run_in_executor(None, self._read)
        logger.info("snapshot_cache_loaded", path=str(self.path), entries=len(pairs))
        return pairs

    async def save(self, pairs: StoragePairs) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, pairs)
        logger.info("snapshot_cache_saved", path=str(self.path), entries=len(pairs))


async def load_snapshot(
    option: Optional[StorageCacheOption],
    fetch: Callable[[], Awaitable[StoragePairs]],
    on_cache_hit: Optional[Callable[[Path], None]] = None,
) -> StoragePairs:
    """
    Resolve the snapshot according to the ``--storage`` option.

    - no option: fetch from the node, nothing is saved
    - ``none``: an empty snapshot, the node is not contacted
    - existing path: the cached file is authoritative, the node is not contacted
    - missing path: fetch from the node, then save to the path
    """
    if option is None:
        return await fetch()

    if option.disabled:
        logger.info("snapshot_disabled")
        return {}

    cache = SnapshotCache(option.path)
    if cache.exists():
        if on_cache_hit is not None:
            on_cache_hit(cache.path)
        logger.info("snapshot_cache_hit", path=str(cache.path))
        return await cache.load()

    logger.info("snapshot_cache_miss", path=str(cache.path))
    pairs = await fetch()
    await cache.save(pairs)
    return pairs
