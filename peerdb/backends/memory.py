"""In-memory peer store for tests and throwaway runs."""

import copy
import itertools
import logging
from collections.abc import Callable

from peerdb.backends import TTL, PeerStore
from peerdb.errors import (
    AddError,
    ErrorKind,
    LockPoisonedError,
    QueryError,
    ScanError,
)
from peerdb.models import PeerRecord
from peerdb.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class InMemoryPeerStore(PeerStore):
    """Volatile ``id -> PeerRecord`` map behind a reader/writer lock.

    Nothing expires and nothing survives a restart.  ``all_peers`` returns
    an unordered, unfiltered page: there is no freshness window here,
    unlike the durable backends.
    """

    default_page_size = 50

    def __init__(self) -> None:
        self._peers: dict[str, PeerRecord] = {}
        self._lock = ReadWriteLock()

    async def add_peer(self, record: PeerRecord, ttl: TTL | None = None) -> None:
        try:
            async with self._lock.write_lock():
                self._peers[record.id] = copy.deepcopy(record)
        except LockPoisonedError as exc:
            raise AddError(str(exc), ErrorKind.LOCK) from exc

    async def all_peers(self, page_size: int | None = None) -> list[PeerRecord]:
        limit = self._resolve_page_size(page_size)
        try:
            async with self._lock.read_lock():
                return [
                    copy.deepcopy(record)
                    for record in itertools.islice(self._peers.values(), limit)
                ]
        except LockPoisonedError as exc:
            raise ScanError(str(exc), ErrorKind.LOCK) from exc

    async def node_by_id(self, peer_id: str) -> list[PeerRecord]:
        return await self._select(lambda record: record.id == peer_id)

    async def node_by_ip(self, address: str) -> list[PeerRecord]:
        return await self._select(lambda record: record.address == address)

    async def _select(
        self, predicate: Callable[[PeerRecord], bool]
    ) -> list[PeerRecord]:
        try:
            async with self._lock.read_lock():
                return [
                    copy.deepcopy(record)
                    for record in self._peers.values()
                    if predicate(record)
                ]
        except LockPoisonedError as exc:
            raise QueryError(str(exc), ErrorKind.LOCK) from exc
