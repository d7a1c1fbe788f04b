"""End-to-end fork run: snapshot, baseline specs, prefixes, assembly, output."""
import asyncio
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from .assembler import ChainSpecAssembler
from .chain_spec import ChainSpec, build_spec, read_runtime_hex
from .config.settings import ForkSettings
from .errors import stage
from .fsutil import atomic_write_text
from .limiter import ConcurrencyLimiter
from .prefixes import PrefixSelector
from .progress import ProgressFactory
from .rpc.client import NodeClient
from .rpc.metadata import PalletInfo
from .snapshot import StoragePairs, fetch_storage_at, load_snapshot

logger = structlog.get_logger()


async def write_chain_spec(spec: ChainSpec, path: Path) -> None:
    """Write the spec as indented JSON."""
    loop = asyncio.get_running_loop()
    with stage(f"write chain spec {path}"):
        await loop.run_in_executor(None, atomic_write_text, Path(path), spec.to_json())
    logger.info("chain_spec_written", path=str(path))


async def run_fork(
    settings: ForkSettings,
    client_factory: Callable[[str], NodeClient] = NodeClient,
    progress: Optional[ProgressFactory] = None,
    echo: Callable[[str], None] = lambda message: None,
) -> ChainSpec:
    """
    Run the whole fork pipeline and write the result to ``settings.out``.

    Nothing is written unless every stage succeeds.

    Args:
        settings: Run configuration
        client_factory: Builds a node client for a url (async context manager)
        progress: Progress bar factory; disabled when omitted
        echo: Sink for user-facing status lines
    """
    progress = progress or ProgressFactory(enabled=False)
    limiter = ConcurrencyLimiter(settings.max_concurrent_requests)

    async def fetch_snapshot() -> StoragePairs:
        async with client_factory(settings.rpc) as client:
            return await fetch_storage_at(
                client, settings.at, limiter,
                page_size=settings.page_size,
                progress=progress,
            )

    async def fetch_metadata() -> List[PalletInfo]:
        async with client_factory(settings.rpc) as client:
            with stage("fetch metadata"):
                return await client.get_metadata(settings.at)

    snapshot = await load_snapshot(
        settings.storage_option,
        fetch_snapshot,
        on_cache_hit=lambda path: echo("using existing storage"),
    )

    original = await build_spec(settings.binary, settings.original_identity)
    target = await build_spec(settings.binary, settings.base_identity)

    selector = PrefixSelector(settings.excluded_pallets)
    prefixes = await selector.select(settings.pallets, fetch_metadata)

    runtime_hex = None
    if settings.runtime is not None:
        echo(f"Reading from runtime wasm file: {settings.runtime}")
        runtime_hex = await read_runtime_hex(settings.runtime)

    spec = ChainSpecAssembler().assemble(
        original,
        target,
        snapshot,
        prefixes,
        runtime_hex=runtime_hex,
        name=settings.fork_name,
        chain_id=settings.fork_id,
    )

    echo("Writing chain specification for fork")
    await write_chain_spec(spec, settings.out)
    return spec
