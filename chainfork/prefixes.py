"""Selection of the storage prefixes transplanted into the fork."""
from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Sequence

import structlog

from .constants import DEFAULT_EXCLUDED_PALLETS
from .hexutil import matches_any, module_prefix, storage_prefix
from .rpc.metadata import PalletInfo

logger = structlog.get_logger()

# Balances live under System.Account even though System itself is excluded
ACCOUNT_PREFIX = storage_prefix("System", "Account")


class PrefixSelector:
    """
    Computes which storage keys are carried over to the fork.

    With an explicit pallet list, exactly those pallets are kept. Otherwise
    the runtime metadata is consulted and every pallet with storage is kept
    unless it is excluded. The excluded pallets hold block, session and
    consensus bookkeeping that the new chain must regenerate itself.
    """

    def __init__(self, excluded_pallets: Iterable[str] = DEFAULT_EXCLUDED_PALLETS):
        self.excluded_pallets = frozenset(excluded_pallets)

    def from_pallet_names(self, pallets: Sequence[str]) -> List[str]:
        """Prefixes for an explicit list of pallet names."""
        prefixes = [ACCOUNT_PREFIX]
        prefixes.extend(module_prefix(name) for name in pallets)
        return prefixes

    def from_metadata(self, pallets: Sequence[PalletInfo]) -> List[str]:
        """Prefixes for every non-excluded pallet that has storage."""
        prefixes = [ACCOUNT_PREFIX]
        for pallet in pallets:
            if pallet.has_storage and pallet.name not in self.excluded_pallets:
                prefixes.append(module_prefix(pallet.name))
            else:
                logger.debug("pallet_skipped", pallet=pallet.name, has_storage=pallet.has_storage)
        return prefixes

    async def select(
        self,
        pallets: Optional[Sequence[str]] = None,
        fetch_metadata: Optional[Callable[[], Awaitable[Sequence[PalletInfo]]]] = None,
    ) -> List[str]:
        """
        Explicit mode when ``pallets`` is given, discovery mode otherwise.

        Args:
            pallets: Pallet names to keep
            fetch_metadata: Coroutine factory returning the runtime's pallets
        """
        if pallets is not None:
            prefixes = self.from_pallet_names(pallets)
            logger.info("prefixes_selected", mode="explicit", pallets=list(pallets))
            return prefixes

        if fetch_metadata is None:
            raise ValueError("discovery mode needs a metadata source")
        metadata = await fetch_metadata()
        prefixes = self.from_metadata(metadata)
        logger.info("prefixes_selected", mode="discovery", count=len(prefixes),
                    excluded=sorted(self.excluded_pallets))
        return prefixes

    @staticmethod
    def filter(snapshot: Mapping[str, str], prefixes: Sequence[str]) -> dict:
        """Pairs whose key starts with any of ``prefixes``."""
        return {key: value for key, value in snapshot.items() if matches_any(key, prefixes)}
