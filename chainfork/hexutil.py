"""Hex and hashing helpers for storage keys and values."""
from typing import Iterable

import xxhash


def to_hex(data: bytes) -> str:
    """Render bytes as a ``0x``-prefixed lowercase hex string."""
    return "0x" + bytes(data).hex()


def from_hex(value: str) -> bytes:
    """Parse a hex string with or without the ``0x`` prefix."""
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def twox_128(data: bytes) -> bytes:
    """128-bit xxHash: xxh64 seeds 0 and 1, little-endian, concatenated."""
    return b"".join(
        xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little")
        for seed in (0, 1)
    )


def module_prefix(module: str) -> str:
    """Storage prefix shared by every key of a pallet (16 bytes)."""
    return to_hex(twox_128(module.encode()))


def storage_prefix(module: str, item: str) -> str:
    """Storage prefix of a single pallet item (32 bytes)."""
    return to_hex(twox_128(module.encode()) + twox_128(item.encode()))


def matches_any(key: str, prefixes: Iterable[str]) -> bool:
    return any(key.startswith(prefix) for prefix in prefixes)


def encode_u64(value: int) -> str:
    """SCALE encoding of an unsigned 64-bit integer."""
    return to_hex(value.to_bytes(8, "little"))
