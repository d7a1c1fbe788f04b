#!/usr/bin/env python3
import asyncio
import sys

import click
import structlog

from .config import configure_logging, load_settings, log_error
from .constants import DEFAULT_BASE_CHAIN, DEFAULT_OUTPUT_PATH, DEFAULT_RPC_URL
from .errors import ForkError
from .pipeline import run_fork
from .progress import ProgressFactory

logger = structlog.get_logger()


@click.command()
@click.option("--bin", "binary", type=click.Path(dir_okay=False), default=None,
              help="Path to the node binary used for chain-spec creation")
@click.option("--runtime", type=click.Path(dir_okay=False), default=None,
              help="Runtime WASM blob for the fork. If omitted the on-chain :code is reused")
@click.option("-o", "--out", type=click.Path(dir_okay=False), default=None,
              help=f"Path to write the fork's chain-spec to [default: {DEFAULT_OUTPUT_PATH}]")
@click.option("--orig", "original_chain", default=None,
              help="Chain to fork from (e.g. dev, test, main)")
@click.option("--base", "base_chain", default=None,
              help=f"Chain whose spec is the base of the fork [default: {DEFAULT_BASE_CHAIN}]")
@click.option("--storage", default=None,
              help="Snapshot cache file. Used if it exists, otherwise written after fetching. "
                   "'none' skips fetching and forks an empty state")
@click.option("--at", default=None, help="Block hash to read state at [default: finalized head]")
@click.option("--name", "fork_name", default=None, help="Name of the fork [default: {original}-fork]")
@click.option("--id", "fork_id", default=None, help="Chain id of the fork [default: {original}-fork]")
@click.option("--rpc", default=None, help=f"Node to pull state from [default: {DEFAULT_RPC_URL}]")
@click.option("--pallets", multiple=True, help="Pallet to keep state from (repeatable). "
              "If omitted, every pallet with storage is kept except the excluded ones")
@click.option("--exclude", "excluded_pallets", multiple=True,
              help="Pallet never to keep when discovering pallets (repeatable)")
@click.option("--max-concurrency", "max_concurrent_requests", type=int, default=None,
              help="Maximum number of requests in flight")
@click.option("--log-level", default=None, help="Log level [default: INFO]")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
def cli(no_progress, pallets, excluded_pallets, **options):
    """Fork a live chain's state into a new chain specification."""
    try:
        settings = load_settings(
            pallets=list(pallets) or None,
            excluded_pallets=list(excluded_pallets) or None,
            **options,
        )
    except ForkError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    configure_logging(settings.log_level, settings.log_format)

    try:
        asyncio.run(run_fork(
            settings,
            progress=ProgressFactory(enabled=not no_progress),
            echo=lambda message: click.secho(message, fg="green"),
        ))
    except ForkError as e:
        log_error(logger, e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        sys.exit(130)

    click.secho("Done!", fg="green")


def main():
    cli()


if __name__ == "__main__":
    main()
