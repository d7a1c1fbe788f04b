"""Paged enumeration of every storage key at one block."""
from typing import AsyncIterator, List, Optional

import structlog

from ..constants import KEYS_PAGE_SIZE
from ..errors import stage
from ..limiter import ConcurrencyLimiter
from ..progress import NullProgress, ProgressReporter

logger = structlog.get_logger()


class KeyEnumerator:
    """
    One-shot async iterator over the node's storage keys.

    Pages are requested strictly in order: the cursor for each request is the
    last key of the previous page, and the first empty page ends the walk.
    Every page request holds a permit from the shared limiter.
    """

    def __init__(
        self,
        client,
        at: str,
        limiter: ConcurrencyLimiter,
        page_size: int = KEYS_PAGE_SIZE,
        prefix: str = "0x",
        progress: Optional[ProgressReporter] = None,
    ):
        self.client = client
        self.at = at
        self.limiter = limiter
        self.page_size = page_size
        self.prefix = prefix
        self.progress = progress or NullProgress()
        self.pages_fetched = 0
        self._started = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("key enumeration cannot be restarted")
        self._started = True
        return self._walk()

    async def _walk(self) -> AsyncIterator[str]:
        start_key: Optional[str] = None
        total = 0
        while True:
            with stage("enumerate storage keys"):
                async with self.limiter:
                    keys = await self.client.get_keys_paged(
                        self.prefix, self.page_size, start_key, self.at
                    )
            self.pages_fetched += 1
            if not keys:
                self.progress.finish("Done")
                logger.info("storage_keys_enumerated", total=total, pages=self.pages_fetched, at=self.at)
                return
            total += len(keys)
            self.progress.inc(len(keys))
            logger.debug("storage_keys_page", page=self.pages_fetched, size=len(keys))
            start_key = keys[-1]
            for key in keys:
                yield key

    async def collect(self) -> List[str]:
        """Materialize the whole key sequence."""
        return [key async for key in self]
