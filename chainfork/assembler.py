"""Assembly of the fork's chain spec from a snapshot and two baseline specs."""
from typing import Mapping, Optional, Sequence

import structlog

from .chain_spec import ChainSpec
from .constants import (
    CODE_KEY,
    DEV_SUDO_ACCOUNT,
    FORK_SUFFIX,
    GENESIS_MARKER_KEY,
    GENESIS_MARKER_VALUE,
    TARGET_BLOCK_TIME_MS,
)
from .errors import RuntimeCodeError
from .hexutil import encode_u64, storage_prefix
from .prefixes import PrefixSelector

logger = structlog.get_logger()

LAST_RUNTIME_UPGRADE_KEY = storage_prefix("System", "LastRuntimeUpgrade")
SUDO_KEY = storage_prefix("Sudo", "Key")
TARGET_BLOCK_TIME_KEY = storage_prefix("Difficulty", "TargetBlockTime")


def resolve_runtime_code(snapshot: Mapping[str, str], runtime_hex: Optional[str] = None) -> str:
    """The runtime file's hex if one was read, else the snapshot's ``:code``."""
    if runtime_hex is not None:
        return runtime_hex
    code = snapshot.get(CODE_KEY)
    if code is None:
        raise RuntimeCodeError(
            "no runtime file given and the snapshot has no :code entry",
            "resolve runtime code",
        )
    return code


class ChainSpecAssembler:
    """
    Turns the base chain's spec into the fork's spec.

    The target spec is mutated in place; the original chain's spec is only
    read for its identity fields.
    """

    def __init__(self, sudo_account: str = DEV_SUDO_ACCOUNT, target_block_time: int = TARGET_BLOCK_TIME_MS):
        self.sudo_account = sudo_account
        self.target_block_time = target_block_time

    @staticmethod
    def apply_identity(
        original: ChainSpec,
        target: ChainSpec,
        name: Optional[str] = None,
        chain_id: Optional[str] = None,
    ) -> None:
        target.name = name if name is not None else original.name + FORK_SUFFIX
        target.id = chain_id if chain_id is not None else original.id + FORK_SUFFIX
        target.protocol_id = original.protocol_id

    @staticmethod
    def merge_state(target: ChainSpec, snapshot: Mapping[str, str], prefixes: Sequence[str]) -> int:
        """Copy every snapshot pair matching a prefix into genesis; returns the count."""
        selected = PrefixSelector.filter(snapshot, prefixes)
        for key, value in selected.items():
            target.set_state(key, value)
        return len(selected)

    @staticmethod
    def drop_last_runtime_upgrade(target: ChainSpec) -> None:
        """
        Remove System.LastRuntimeUpgrade so the first block runs migrations.

        Carried over from the original fork-off tooling as-is; whether forcing
        the upgrade path is always wanted is still open for review.
        """
        target.remove_state(LAST_RUNTIME_UPGRADE_KEY)

    def apply_overrides(self, target: ChainSpec, runtime_code: str) -> None:
        target.set_state(CODE_KEY, runtime_code)
        # Different genesis hash from the chain being forked
        target.set_state(GENESIS_MARKER_KEY, GENESIS_MARKER_VALUE)
        target.set_state(SUDO_KEY, self.sudo_account)
        target.boot_nodes = []
        target.set_state(TARGET_BLOCK_TIME_KEY, encode_u64(self.target_block_time))

    def assemble(
        self,
        original: ChainSpec,
        target: ChainSpec,
        snapshot: Mapping[str, str],
        prefixes: Sequence[str],
        runtime_hex: Optional[str] = None,
        name: Optional[str] = None,
        chain_id: Optional[str] = None,
    ) -> ChainSpec:
        """
        Build the fork spec.

        Args:
            original: Spec of the chain being forked (read only)
            target: Spec of the base chain; mutated and returned
            snapshot: Full storage of the original chain
            prefixes: Storage prefixes to transplant
            runtime_hex: Replacement runtime code, if a file was supplied
            name: Fork name; defaults to the original's name + "-fork"
            chain_id: Fork id; defaults to the original's id + "-fork"

        Raises:
            RuntimeCodeError: If no runtime code source is available
        """
        self.apply_identity(original, target, name, chain_id)
        merged = self.merge_state(target, snapshot, prefixes)
        self.drop_last_runtime_upgrade(target)
        runtime_code = resolve_runtime_code(snapshot, runtime_hex)
        self.apply_overrides(target, runtime_code)

        logger.info(
            "chain_spec_assembled",
            name=target.name,
            id=target.id,
            merged_entries=merged,
            snapshot_entries=len(snapshot),
            genesis_entries=len(target.state),
        )
        return target
