"""Aggregator: client, country, chain and capability distributions."""

import logging
from dataclasses import dataclass, field

from peerdb.models import PeerRecord

logger = logging.getLogger(__name__)


@dataclass
class AggregatedResult:
    """Aggregated statistics computed from a list of peers.

    Each distribution is a list of ``(label, count)`` pairs sorted by count
    descending, ties broken by label.

    Attributes:
        client_distribution: Client names (``"Geth"``, ``"Nethermind"``...).
        country_distribution: Country names; peers without one are skipped.
        chain_distribution: Chain identifiers.
        capability_distribution: Advertised capabilities, one count per
            peer advertising it.
        total: Number of peers aggregated.
    """

    client_distribution: list[tuple[str, int]] = field(default_factory=list)
    country_distribution: list[tuple[str, int]] = field(default_factory=list)
    chain_distribution: list[tuple[str, int]] = field(default_factory=list)
    capability_distribution: list[tuple[str, int]] = field(default_factory=list)
    total: int = 0


def client_name(client_version: str) -> str:
    """Extract the client name from a version string.

    ``"Geth/v1.13.5-stable/linux-amd64/go1.21.4"`` becomes ``"Geth"``.
    Empty strings map to ``"unknown"``.
    """
    name = client_version.split("/", 1)[0].strip()
    return name or "unknown"


def aggregate(records: list[PeerRecord]) -> AggregatedResult:
    """Compute distribution statistics from a list of peers."""
    clients: dict[str, int] = {}
    countries: dict[str, int] = {}
    chains: dict[str, int] = {}
    capabilities: dict[str, int] = {}

    for record in records:
        name = client_name(record.client_version)
        clients[name] = clients.get(name, 0) + 1

        if record.country:
            countries[record.country] = countries.get(record.country, 0) + 1

        chains[record.chain] = chains.get(record.chain, 0) + 1

        for cap in set(record.capabilities):
            capabilities[cap] = capabilities.get(cap, 0) + 1

    return AggregatedResult(
        client_distribution=_sorted(clients),
        country_distribution=_sorted(countries),
        chain_distribution=_sorted(chains),
        capability_distribution=_sorted(capabilities),
        total=len(records),
    )


def _sorted(counts: dict[str, int]) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))
