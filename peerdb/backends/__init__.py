"""Peer store registry and abstract PeerStore base class."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from peerdb.config import PeerDBConfig
    from peerdb.models import PeerRecord

logger = logging.getLogger(__name__)

# TTL accepted by add_peer: epoch seconds, aware datetime or relative duration.
TTL = int | datetime | timedelta


class PeerStore(ABC):
    """Abstract base class for all peer storage backends.

    Every backend implements the same four operations.  The concrete store
    is chosen once at startup (see ``make_store``) and handed explicitly to
    producers and readers for the lifetime of the process.

    Stores are async context managers; leaving the block closes the store.
    """

    #: Page size used by ``all_peers`` when the caller passes none.
    default_page_size: int = 1000

    @abstractmethod
    async def add_peer(self, record: PeerRecord, ttl: TTL | None = None) -> None:
        """Insert or overwrite the record stored under ``record.id``.

        Args:
            record: Peer record to store.
            ttl: Absolute expiry instant.  Backends without native expiry
                ignore it; backends that require it reject ``None``.

        Raises:
            AddError: If the record could not be written.
        """

    @abstractmethod
    async def all_peers(self, page_size: int | None = None) -> list[PeerRecord]:
        """Return up to *page_size* stored records.

        Raises:
            ScanError: If the backing store could not be scanned.
            ValueError: If *page_size* is negative.
        """

    @abstractmethod
    async def node_by_id(self, peer_id: str) -> list[PeerRecord]:
        """Return the records stored under *peer_id* (empty if none).

        Raises:
            QueryError: If the lookup itself failed.
        """

    @abstractmethod
    async def node_by_ip(self, address: str) -> list[PeerRecord]:
        """Return the records whose address equals *address*.

        Raises:
            QueryError: If the lookup itself failed.
        """

    async def close(self) -> None:
        """Release backend resources.  The default does nothing."""

    async def __aenter__(self) -> PeerStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self.default_page_size
        if page_size < 0:
            raise ValueError(f"page_size must be >= 0, got {page_size}")
        return page_size


async def make_store(config: PeerDBConfig) -> PeerStore:
    """Build the store selected by *config*.

    ``config.local_db`` picks the SQLite file store; otherwise the DynamoDB
    store is used.  The in-memory store is never selected here.

    Imports are deferred so that a local run does not need AWS libraries
    configured and vice versa.
    """
    if config.local_db:
        from peerdb.backends.sqlite import SqlitePeerStore

        logger.debug("Using SQLite peer store at %s", config.db_path)
        return await SqlitePeerStore.connect(config.db_path)

    from peerdb.backends.dynamo import DynamoConfig, DynamoPeerStore

    logger.debug("Using DynamoDB peer store, table %s", config.table_name)
    return DynamoPeerStore(DynamoConfig.from_peerdb_config(config))
