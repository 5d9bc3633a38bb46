"""CLI entry point for the peerdb tool."""

import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path

import click

from peerdb.aggregator import aggregate
from peerdb.backends import PeerStore, make_store
from peerdb.backends.sqlite import SqlitePeerStore
from peerdb.config import ConfigError, PeerDBConfig, load_config
from peerdb.errors import PeerStoreError
from peerdb.geoip import enrich
from peerdb.models import PeerRecord
from peerdb.output import render

logger = logging.getLogger(__name__)

FORMATS = ("table", "json")

_format_option = click.option(
    "--format",
    "-f",
    "output_format",
    default="table",
    type=click.Choice(FORMATS, case_sensitive=False),
    show_default=True,
    help="Output format.",
)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to YAML config file (default: ~/.peerdb/config.yaml).",
)
@click.option(
    "--local-db",
    is_flag=True,
    default=False,
    help="Use the local SQLite database instead of DynamoDB.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(
    ctx: click.Context, config_path: str | None, local_db: bool, verbose: bool
) -> None:
    """Inspect and maintain stored Ethereum peer data."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        cfg = load_config(config_path)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if local_db:
        cfg.local_db = True

    logger.debug("Config loaded: %s", cfg)
    ctx.obj = cfg


@main.command("list")
@click.option(
    "--page-size",
    "-n",
    default=None,
    type=click.IntRange(min=0),
    help="Maximum number of peers to list (default: backend-specific).",
)
@_format_option
@click.pass_obj
def list_peers(cfg: PeerDBConfig, page_size: int | None, output_format: str) -> None:
    """List stored peers."""
    peers = _run(cfg, lambda store: store.all_peers(page_size))
    render(peers, output_format)


@main.command()
@click.option("--id", "peer_id", default=None, help="Node id to look up.")
@click.option("--ip", "address", default=None, help="IP address to look up.")
@_format_option
@click.pass_obj
def lookup(
    cfg: PeerDBConfig,
    peer_id: str | None,
    address: str | None,
    output_format: str,
) -> None:
    """Look up peers by node id or by IP address."""
    if (peer_id is None) == (address is None):
        raise click.UsageError("Pass exactly one of --id or --ip.")

    if peer_id is not None:
        peers = _run(cfg, lambda store: store.node_by_id(peer_id))
    else:
        peers = _run(cfg, lambda store: store.node_by_ip(address))
    render(peers, output_format)


@main.command()
@click.option(
    "--days",
    required=True,
    type=click.IntRange(min=0),
    help="Delete peers not seen for this many days.",
)
@click.pass_obj
def prune(cfg: PeerDBConfig, days: int) -> None:
    """Delete stale peers from the local database.

    DynamoDB expires peers on its own through the table TTL.
    """
    if not cfg.local_db:
        click.echo(
            "Error: prune only applies to the local database (use --local-db); "
            "DynamoDB expires peers through its TTL attribute.",
            err=True,
        )
        sys.exit(1)

    async def _prune(store: PeerStore) -> int:
        if not isinstance(store, SqlitePeerStore):
            raise click.ClickException(
                f"prune needs the local SQLite database, got {type(store).__name__}"
            )
        return await store.prune_peers(days)

    deleted = _run(cfg, _prune)
    click.echo(f"Pruned {deleted} peers older than {days} days.")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def ingest(cfg: PeerDBConfig, path: str) -> None:
    """Store peer records from a crawler's JSON dump.

    PATH must contain a JSON array of peer objects.  Missing country/city
    values are filled from GeoIP when a MaxMind database is configured.
    """
    try:
        records = _load_records(Path(path))
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    enrich(records, cfg)
    ttl = timedelta(days=cfg.ttl_days)

    async def _ingest(store: PeerStore) -> None:
        for record in records:
            await store.add_peer(record, ttl)

    _run(cfg, _ingest)
    click.echo(f"Stored {len(records)} peers.")


@main.command()
@click.option(
    "--page-size",
    "-n",
    default=None,
    type=click.IntRange(min=0),
    help="Maximum number of peers to aggregate (default: backend-specific).",
)
@_format_option
@click.pass_obj
def stats(cfg: PeerDBConfig, page_size: int | None, output_format: str) -> None:
    """Show client, country, chain and capability distributions."""
    peers = _run(cfg, lambda store: store.all_peers(page_size))
    render(aggregate(peers), output_format)


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _run(cfg: PeerDBConfig, operation):
    """Open the configured store, run *operation* on it, and close it.

    Store errors are reported on stderr and end the process with status 1.
    """

    async def _main():
        async with await make_store(cfg) as store:
            return await operation(store)

    try:
        return asyncio.run(_main())
    except PeerStoreError as exc:
        logger.debug("Store operation failed", exc_info=exc)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _load_records(path: Path) -> list[PeerRecord]:
    """Parse a JSON array of peer objects.

    Raises:
        ValueError: If the file is not valid JSON, not an array, or an
            entry is not a valid peer record.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise ValueError(f"Expected a JSON array of peers in {path}")

    records = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"Entry {index} in {path} is not an object")
        try:
            records.append(PeerRecord.from_dict(entry))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Entry {index} in {path}: {exc}") from exc
    return records
