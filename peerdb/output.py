"""Output renderer: rich tables and JSON for peer lists and statistics."""

import dataclasses
import json
import logging
import sys
from io import StringIO

from rich.console import Console
from rich.table import Table

from peerdb.aggregator import AggregatedResult
from peerdb.models import PeerRecord

logger = logging.getLogger(__name__)

# Columns displayed in the peer table.
_PEER_COLUMNS = [
    ("ID", "id"),
    ("IP", "address"),
    ("Port", "tcp_port"),
    ("Client", "client_version"),
    ("Chain", "chain"),
    ("eth", "eth_version"),
    ("Country", "country"),
    ("City", "city"),
    ("Last seen", "last_seen"),
]

# Node ids are 128 hex chars; the table shows a prefix.
_ID_WIDTH = 16

# How many entries to show in the statistics tables.
_TOP_N = 10

Renderable = list[PeerRecord] | AggregatedResult


def render(
    data: Renderable,
    fmt: str,
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Dispatch output to the appropriate formatter.

    Args:
        data: A list of peers or aggregated statistics.
        fmt: Output format — ``"table"`` or ``"json"``.
        file: Writable file object for output (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).

    Raises:
        ValueError: If *fmt* is not ``"table"`` or ``"json"``.
    """
    if fmt == "table":
        render_table(data, file=file, width=width)
    elif fmt == "json":
        render_json(data, file=file)
    else:
        raise ValueError(f"Unknown output format: {fmt!r}")


# ---------------------------------------------------------------------------
# Table (rich) formatter
# ---------------------------------------------------------------------------


def render_table(
    data: Renderable,
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Render *data* as ``rich`` tables to *file*."""
    out = file or sys.stdout
    console = Console(file=out, highlight=False, width=width)

    if isinstance(data, AggregatedResult):
        _render_table_stats(console, data)
    else:
        _render_table_peers(console, data)


def _render_table_peers(console: Console, peers: list[PeerRecord]) -> None:
    """Render one row per peer."""
    table = Table(title=f"{len(peers)} peers")
    for header, _ in _PEER_COLUMNS:
        table.add_column(header)

    for peer in peers:
        row = [_fmt(getattr(peer, attr)) for _, attr in _PEER_COLUMNS]
        row[0] = peer.id[:_ID_WIDTH]
        table.add_row(*row)

    console.print(table)


def _render_table_stats(console: Console, result: AggregatedResult) -> None:
    """Render one table per non-empty distribution."""
    console.print(f"\n[bold]{result.total} peers — distribution[/bold]\n")

    sections = [
        ("Clients", "Client", result.client_distribution),
        ("Countries", "Country", result.country_distribution),
        ("Chains", "Chain", result.chain_distribution),
        ("Capabilities", "Capability", result.capability_distribution),
    ]
    printed = False
    for title, header, distribution in sections:
        if not distribution:
            continue
        t = Table(title=title)
        t.add_column(header)
        t.add_column("Peers", justify="right")
        for label, count in distribution[:_TOP_N]:
            t.add_row(label, str(count))
        console.print(t)
        printed = True

    if not printed:
        console.print("  No peers to aggregate.")


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


def render_json(data: Renderable, *, file: object | None = None) -> None:
    """Render *data* as JSON to *file*.

    Peer lists become ``{"count": N, "peers": [...]}``; statistics become
    the ``AggregatedResult`` fields as an object.
    """
    out = file or sys.stdout
    if isinstance(data, AggregatedResult):
        payload = dataclasses.asdict(data)
    else:
        payload = {"count": len(data), "peers": [peer.to_dict() for peer in data]}
    json.dump(payload, out, indent=2, default=str)
    out.write("\n")  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(value: object) -> str:
    """Format a field value for table display.

    ``None`` becomes ``"—"``, everything else is stringified.
    """
    if value is None:
        return "—"
    return str(value)


def render_to_string(data: Renderable, fmt: str, *, width: int = 200) -> str:
    """Render to a string instead of stdout — useful for testing."""
    buf = StringIO()
    render(data, fmt, file=buf, width=width)
    return buf.getvalue()
