"""Data models: PeerRecord dataclass and timestamp helpers."""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: str) -> str:
    """Normalise an ISO-8601 timestamp string to the canonical form.

    Raises:
        ValueError: If *value* is not ISO-8601 or carries no UTC offset.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid last_seen timestamp: {value!r}") from exc
    return format_timestamp(parsed)


def format_timestamp(dt: datetime) -> str:
    """Render *dt* in the canonical ``last_seen`` form.

    All stored timestamps share this exact shape
    (``YYYY-MM-DDTHH:MM:SS+00:00``), so comparing the strings compares
    the instants.  Backends rely on this for freshness filters and pruning.

    Args:
        dt: An aware datetime.  Naive datetimes are rejected because the
            offset would be guessed.

    Raises:
        ValueError: If *dt* is naive.
    """
    if dt.tzinfo is None:
        raise ValueError("last_seen timestamps must be timezone-aware")
    return dt.astimezone(UTC).replace(microsecond=0).isoformat()


# Keys that PeerRecord.from_dict refuses to default.
_REQUIRED_KEYS = (
    "id",
    "address",
    "client_version",
    "enode_url",
    "tcp_port",
    "chain",
    "genesis_block_hash",
    "best_block",
    "total_difficulty",
    "last_seen",
    "capabilities",
    "eth_version",
)


@dataclass
class PeerRecord:
    """Metadata describing one observed peer, keyed by node identity.

    Chain-state numerics (``best_block``, ``total_difficulty``) are kept as
    strings because the managed table store only carries string-typed
    numbers and total difficulty overflows 64 bits anyway.

    Attributes:
        id: Opaque node identifier (hex node id / public key).
        address: IP address the peer was reached at.
        client_version: Client identification string (e.g.
            ``"Geth/v1.13.5-stable/linux-amd64/go1.21.4"``).
        enode_url: ``enode://`` connection URL.
        tcp_port: Listening TCP port.
        chain: Chain name or identifier (e.g. ``"mainnet"``).
        genesis_block_hash: Genesis hash advertised in the status message.
        best_block: Head block hash or number, string-encoded.
        total_difficulty: Total difficulty, decimal string.
        last_seen: Canonical UTC timestamp of the latest observation.
        capabilities: Advertised protocol capabilities (``"eth/68"``...).
        eth_version: Negotiated ``eth`` protocol version.
        country: Country name, if geolocated.
        city: City name, if geolocated.
    """

    id: str
    address: str
    client_version: str
    enode_url: str
    tcp_port: int
    chain: str
    genesis_block_hash: str
    best_block: str
    total_difficulty: str
    last_seen: str
    capabilities: list[str] = field(default_factory=list)
    eth_version: int = 0
    country: str | None = None
    city: str | None = None

    def to_dict(self) -> dict:
        """Return the record as a plain, JSON-serialisable dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> "PeerRecord":
        """Build a record from a plain dict (e.g. a crawler's JSON dump).

        Unknown keys are ignored.

        Raises:
            ValueError: If a required key is missing, ``capabilities`` is
                not a list, or ``last_seen`` is not an aware ISO-8601
                timestamp.  ``last_seen`` is stored in canonical UTC form.
        """
        missing = [key for key in _REQUIRED_KEYS if key not in raw]
        if missing:
            raise ValueError(f"Peer record is missing keys: {', '.join(missing)}")

        capabilities = raw["capabilities"]
        if not isinstance(capabilities, list):
            raise ValueError("Peer record capabilities must be a list of strings")

        return cls(
            id=str(raw["id"]),
            address=str(raw["address"]),
            client_version=str(raw["client_version"]),
            enode_url=str(raw["enode_url"]),
            tcp_port=int(raw["tcp_port"]),
            chain=str(raw["chain"]),
            genesis_block_hash=str(raw["genesis_block_hash"]),
            best_block=str(raw["best_block"]),
            total_difficulty=str(raw["total_difficulty"]),
            last_seen=parse_timestamp(str(raw["last_seen"])),
            capabilities=[str(cap) for cap in capabilities],
            eth_version=int(raw["eth_version"]),
            country=raw.get("country"),
            city=raw.get("city"),
        )
