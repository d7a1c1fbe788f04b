"""Decoding of runtime metadata into the pallet facts the fork needs."""
from dataclasses import dataclass
from typing import Any, List

from scalecodec.base import RuntimeConfigurationObject, ScaleBytes
from scalecodec.type_registry import load_type_registry_preset

from ..errors import RpcError


@dataclass(frozen=True)
class PalletInfo:
    name: str
    has_storage: bool


def _has_storage_items(storage: Any) -> bool:
    if not storage:
        return False
    if isinstance(storage, dict):
        # V9+ wraps items in {"prefix": ..., "entries": [...]}; older versions list them
        items = storage.get("entries", storage.get("items"))
        return bool(items) if items is not None else True
    return bool(storage)


def pallets_from_metadata(value: Any) -> List[PalletInfo]:
    """
    Extract pallet names and storage presence from decoded metadata.

    Args:
        value: The ``value`` of a decoded ``MetadataVersioned`` object

    Returns:
        Pallets in metadata order
    """
    if isinstance(value, (list, tuple)):
        value = {"metadata": value[-1]}
    versioned = value.get("metadata", value)
    if not isinstance(versioned, dict) or len(versioned) != 1:
        raise RpcError("unexpected metadata layout", "decode metadata")
    (body,) = versioned.values()
    # V14 calls them pallets, earlier versions modules
    pallets = body.get("pallets", body.get("modules"))
    if pallets is None:
        raise RpcError("metadata contains no pallet list", "decode metadata")
    return [
        PalletInfo(name=pallet["name"], has_storage=_has_storage_items(pallet.get("storage")))
        for pallet in pallets
    ]


def decode_pallets(metadata_hex: str) -> List[PalletInfo]:
    """Decode the hex blob returned by ``state_getMetadata``."""
    runtime_config = RuntimeConfigurationObject()
    runtime_config.update_type_registry(load_type_registry_preset("core"))
    try:
        metadata = runtime_config.create_scale_object(
            "MetadataVersioned", data=ScaleBytes(metadata_hex)
        )
        metadata.decode()
    except Exception as e:
        raise RpcError(f"cannot decode runtime metadata: {e}", "decode metadata") from e
    return pallets_from_metadata(metadata.value)
