"""YAML configuration file loading."""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".peerdb"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_DB_PATH = "peers_data.db"


@dataclass
class PeerDBConfig:
    """Top-level configuration for the peerdb tool.

    Every field has a default, so a production run against DynamoDB in the
    ambient AWS account needs no config file at all.

    Attributes:
        local_db: Use the local SQLite file instead of DynamoDB.
        db_path: Path to the SQLite database file.
        table_name: DynamoDB table holding peer records.
        aws_region: Explicit AWS region, or None to use the ambient AWS
            configuration.
        fallback_region: Region used when no region is configured anywhere.
        dynamodb_endpoint_url: Custom DynamoDB endpoint (DynamoDB Local,
            LocalStack), or None for the AWS default.
        maxmind_city_db: Path to GeoLite2-City.mmdb, or None if not configured.
        ttl_days: Lifetime given to ingested peers in DynamoDB, in days.
    """

    local_db: bool = False
    db_path: str = DEFAULT_DB_PATH
    table_name: str = "eth-peer-data"
    aws_region: str | None = None
    fallback_region: str = "us-west-2"
    dynamodb_endpoint_url: str | None = None
    maxmind_city_db: str | None = None
    ttl_days: int = 7


# Keys in the YAML file that map to PeerDBConfig fields.
_YAML_KEY_TO_FIELD: dict[str, str] = {
    "local_db": "local_db",
    "db_path": "db_path",
    "table_name": "table_name",
    "aws_region": "aws_region",
    "fallback_region": "fallback_region",
    "dynamodb_endpoint_url": "dynamodb_endpoint_url",
    "maxmind_city_db": "maxmind_city_db",
    "ttl_days": "ttl_days",
}


def load_config(path: Path | str | None = None) -> PeerDBConfig:
    """Load configuration from a YAML file.

    Args:
        path: Explicit path to a YAML config file.  If ``None``, the
            default location (``~/.peerdb/config.yaml``) is tried.  If the
            default file doesn't exist, a ``PeerDBConfig`` with all defaults
            is returned silently.

    Returns:
        A populated ``PeerDBConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit *path* was given but doesn't exist.
        ConfigError: If the file contains invalid YAML, has an unexpected
            top-level structure, or a value of the wrong type.
    """
    resolved = _resolve_path(path)

    if resolved is None:
        logger.debug("No config file found; using defaults")
        return PeerDBConfig()

    logger.debug("Loading config from %s", resolved)
    text = resolved.read_text(encoding="utf-8")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {resolved}: {exc}") from exc

    if raw is None:
        # Empty file: all defaults.
        return PeerDBConfig()

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {resolved}, "
            f"got {type(raw).__name__}"
        )

    return _build_config(raw, source=resolved)


class ConfigError(Exception):
    """Raised when a configuration file is malformed or unreadable."""


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _resolve_path(path: Path | str | None) -> Path | None:
    """Return a concrete ``Path`` to read, or ``None`` if nothing to read.

    Raises:
        FileNotFoundError: If the caller supplied an explicit path that
            doesn't exist on disk.
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    # Try the default location.
    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def _build_config(raw: dict, source: Path) -> PeerDBConfig:
    """Map raw YAML dict to a ``PeerDBConfig``, ignoring unknown keys."""
    kwargs: dict[str, object] = {}

    for yaml_key, field_name in _YAML_KEY_TO_FIELD.items():
        if yaml_key in raw:
            kwargs[field_name] = raw[yaml_key]

    unknown = set(raw) - set(_YAML_KEY_TO_FIELD)
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(unknown)),
        )

    if "local_db" in kwargs and not isinstance(kwargs["local_db"], bool):
        raise ConfigError(f"local_db must be true or false in {source}")
    if "ttl_days" in kwargs and (
        isinstance(kwargs["ttl_days"], bool) or not isinstance(kwargs["ttl_days"], int)
    ):
        raise ConfigError(f"ttl_days must be an integer in {source}")

    return PeerDBConfig(**kwargs)
