"""SQLite peer store: single-file table, upserts and explicit pruning."""

import json
import logging
import sqlite3
from pathlib import Path

import aiosqlite

from peerdb.backends import TTL, PeerStore
from peerdb.errors import (
    AddError,
    DeleteError,
    ErrorKind,
    OpenError,
    QueryError,
    ScanError,
)
from peerdb.models import PeerRecord
from peerdb.retention import prune_cutoff

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "peers_data.db"

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS eth_peer_data (
    id                TEXT PRIMARY KEY,
    ip                TEXT NOT NULL,
    client_version    TEXT NOT NULL,
    enode_url         TEXT NOT NULL,
    port              INTEGER NOT NULL,
    chain             TEXT NOT NULL,
    genesis_hash      TEXT NOT NULL,
    best_block        TEXT NOT NULL,
    total_difficulty  TEXT NOT NULL,
    country           TEXT,
    city              TEXT,
    last_seen         TEXT NOT NULL,
    capabilities      TEXT,
    eth_version       INTEGER
);

CREATE INDEX IF NOT EXISTS eth_peer_data_ip ON eth_peer_data (ip);
"""

_COLUMNS = (
    "id, ip, client_version, enode_url, port, chain, genesis_hash, "
    "best_block, total_difficulty, country, city, last_seen, "
    "capabilities, eth_version"
)


def encode_capabilities(capabilities: list[str]) -> str:
    """Serialise capabilities as a JSON array (safe for any character)."""
    return json.dumps(capabilities)


def decode_capabilities(raw: str | None) -> list[str]:
    """Parse a stored capabilities column.

    Accepts the JSON array written by ``encode_capabilities`` as well as
    the older comma-joined text (``"eth/66,snap/1"``).
    """
    if not raw:
        return []
    if raw.startswith("["):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(cap) for cap in decoded]
    return raw.split(",")


def _row_to_record(row: sqlite3.Row) -> PeerRecord:
    return PeerRecord(
        id=row["id"],
        address=row["ip"],
        client_version=row["client_version"],
        enode_url=row["enode_url"],
        tcp_port=row["port"],
        chain=row["chain"],
        genesis_block_hash=row["genesis_hash"],
        best_block=row["best_block"],
        total_difficulty=row["total_difficulty"],
        country=row["country"],
        city=row["city"],
        last_seen=row["last_seen"],
        capabilities=decode_capabilities(row["capabilities"]),
        eth_version=row["eth_version"] if row["eth_version"] is not None else 0,
    )


class SqlitePeerStore(PeerStore):
    """Peer store backed by one local SQLite file.

    ``aiosqlite`` runs every statement on a single dedicated thread fed by a
    FIFO queue, so at most one operation touches the file at a time and
    reads wait behind earlier writes.

    No freshness window is applied on reads; use ``prune_peers`` (or filter
    ``last_seen``) to drop stale peers.  ``ttl`` is accepted and ignored.

    Args:
        db_path: Filesystem path of the database, or ``":memory:"``.
    """

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None

    @classmethod
    async def connect(
        cls, db_path: Path | str = DEFAULT_DB_PATH
    ) -> "SqlitePeerStore":
        """Create a store and open it in one step."""
        store = cls(db_path)
        await store.open()
        return store

    async def open(self) -> None:
        """Open the database file and create the peer table if absent.

        Raises:
            OpenError: If the file cannot be opened or the schema created.
        """
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except sqlite3.Error as exc:
            await self.close()
            raise OpenError(
                f"Failed to open peer database {self.db_path}: {exc}",
                ErrorKind.ENGINE,
            ) from exc
        logger.debug("SQLite peer store opened: %s", self.db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
            logger.debug("SQLite peer store closed: %s", self.db_path)

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection, raising if not opened."""
        if self._db is None:
            raise RuntimeError("Store not opened. Call open() first.")
        return self._db

    async def add_peer(self, record: PeerRecord, ttl: TTL | None = None) -> None:
        try:
            cursor = await self.db.execute(
                f"INSERT OR REPLACE INTO eth_peer_data ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.address,
                    record.client_version,
                    record.enode_url,
                    record.tcp_port,
                    record.chain,
                    record.genesis_block_hash,
                    record.best_block,
                    record.total_difficulty,
                    record.country,
                    record.city,
                    record.last_seen,
                    encode_capabilities(record.capabilities),
                    record.eth_version,
                ),
            )
            await cursor.close()
            await self.db.commit()
        except sqlite3.Error as exc:
            raise AddError(
                f"Failed to store peer {record.id!r}: {exc}", ErrorKind.ENGINE
            ) from exc

    async def all_peers(self, page_size: int | None = None) -> list[PeerRecord]:
        limit = self._resolve_page_size(page_size)
        try:
            return await self._fetch(
                f"SELECT {_COLUMNS} FROM eth_peer_data LIMIT ?", (limit,)
            )
        except sqlite3.Error as exc:
            raise ScanError(
                f"Failed to scan peers: {exc}", ErrorKind.ENGINE
            ) from exc

    async def node_by_id(self, peer_id: str) -> list[PeerRecord]:
        try:
            return await self._fetch(
                f"SELECT {_COLUMNS} FROM eth_peer_data WHERE id = ?", (peer_id,)
            )
        except sqlite3.Error as exc:
            raise QueryError(
                f"Failed to look up peer {peer_id!r}: {exc}", ErrorKind.ENGINE
            ) from exc

    async def node_by_ip(self, address: str) -> list[PeerRecord]:
        try:
            return await self._fetch(
                f"SELECT {_COLUMNS} FROM eth_peer_data WHERE ip = ?", (address,)
            )
        except sqlite3.Error as exc:
            raise QueryError(
                f"Failed to look up address {address!r}: {exc}", ErrorKind.ENGINE
            ) from exc

    async def prune_peers(self, age_days: int) -> int:
        """Delete peers whose ``last_seen`` is older than *age_days* days.

        Meant to be run periodically by a maintenance job.

        Args:
            age_days: Maximum age to keep, in days.

        Returns:
            Number of deleted peers.

        Raises:
            DeleteError: If the delete statement failed.
            ValueError: If *age_days* is negative.
        """
        cutoff = prune_cutoff(age_days)
        try:
            cursor = await self.db.execute(
                "DELETE FROM eth_peer_data WHERE last_seen < ?", (cutoff,)
            )
            deleted = cursor.rowcount
            await cursor.close()
            await self.db.commit()
        except sqlite3.Error as exc:
            raise DeleteError(
                f"Failed to prune peers: {exc}", ErrorKind.ENGINE
            ) from exc

        logger.info("Number of peers pruned: %d", deleted)
        return deleted

    async def _fetch(self, sql: str, params: tuple) -> list[PeerRecord]:
        async with self.db.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]
