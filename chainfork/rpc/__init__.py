"""Node RPC access."""

from .client import NodeClient
from .metadata import PalletInfo, decode_pallets, pallets_from_metadata

__all__ = ["NodeClient", "PalletInfo", "decode_pallets", "pallets_from_metadata"]
