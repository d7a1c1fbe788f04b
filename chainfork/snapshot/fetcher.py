"""Concurrent retrieval of storage values under a shared request cap."""
import asyncio
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..constants import KEYS_PAGE_SIZE
from ..errors import MissingStorageValueError, stage
from ..limiter import ConcurrencyLimiter
from ..progress import ProgressFactory
from .enumerator import KeyEnumerator

logger = structlog.get_logger()

StoragePairs = Dict[str, str]


async def _fetch_value(
    client, key: str, at: str, limiter: ConcurrencyLimiter, progress=None
) -> Tuple[str, str]:
    async with limiter:
        with stage("fetch storage values"):
            value = await client.get_storage(key, at)
    if value is None:
        raise MissingStorageValueError(key, at)
    if progress is not None:
        progress.inc(1)
    return key, value


async def fetch_values(
    client,
    keys: Sequence[str],
    at: str,
    limiter: ConcurrencyLimiter,
    progress=None,
) -> StoragePairs:
    """
    Fetch the value of every key, failing the whole batch on the first error.

    All fetches are scheduled at once and race for limiter permits, and each
    one bumps ``progress`` as it completes. When one
    fails, every fetch still pending is cancelled and the first error is
    raised; no partial result is returned.
    """
    pairs: StoragePairs = {}
    if not keys:
        if progress is not None:
            progress.finish("Done")
        return pairs

    tasks = {
        asyncio.create_task(_fetch_value(client, key, at, limiter, progress))
        for key in keys
    }
    pending = tasks
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            errors = [task.exception() for task in done if task.exception() is not None]
            if errors:
                raise errors[0]
            for task in done:
                key, value = task.result()
                pairs[key] = value
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if progress is not None:
        progress.finish("Done")
    return pairs


async def fetch_storage_pairs(
    client,
    at: str,
    limiter: ConcurrencyLimiter,
    page_size: int = KEYS_PAGE_SIZE,
    progress: Optional[ProgressFactory] = None,
) -> StoragePairs:
    """Enumerate all keys at ``at``, then fetch every value."""
    progress = progress or ProgressFactory(enabled=False)

    enumerator = KeyEnumerator(
        client, at, limiter,
        page_size=page_size,
        progress=progress.spinner("Fetching storage keys"),
    )
    keys: List[str] = await enumerator.collect()

    pairs = await fetch_values(
        client, keys, at, limiter,
        progress=progress.bar(len(keys), "Fetching storage values"),
    )
    logger.info("storage_values_fetched", count=len(pairs), at=at, **limiter.stats())
    return pairs


async def fetch_storage_at(
    client,
    at: Optional[str],
    limiter: ConcurrencyLimiter,
    page_size: int = KEYS_PAGE_SIZE,
    progress: Optional[ProgressFactory] = None,
) -> StoragePairs:
    """Fetch the full snapshot at ``at``, or at the finalized head if omitted."""
    if at is None:
        with stage("resolve block"):
            at = await client.get_finalized_head()
        logger.info("snapshot_block_resolved", at=at)
    return await fetch_storage_pairs(client, at, limiter, page_size=page_size, progress=progress)
