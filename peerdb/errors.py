"""Error taxonomy: one exception family per store operation.

Callers catch the family (``AddError``, ``ScanError``, ``QueryError``,
``DeleteError``) and treat every backend the same.  The backend-specific
cause is kept both as ``kind`` and as the chained ``__cause__`` so logging
can still tell a DynamoDB throttle from a locked SQLite file.
"""

from enum import Enum


class ErrorKind(Enum):
    """Backend-specific reason behind an operation error."""

    SERVICE = "service"  # managed table store / transport failure
    ENGINE = "engine"  # embedded SQL engine failure
    LOCK = "lock"  # in-memory lock poisoned by an earlier failure
    MISSING_TTL = "missing_ttl"


class PeerStoreError(Exception):
    """Base class for every error raised by a peer store."""

    def __init__(self, message: str, kind: ErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


class AddError(PeerStoreError):
    """Raised when a peer record could not be written."""


class MissingTTLError(AddError):
    """Raised when a backend that requires a TTL is given none."""

    def __init__(self, peer_id: str) -> None:
        super().__init__(
            f"A TTL is required to store peer {peer_id!r}", ErrorKind.MISSING_TTL
        )
        self.peer_id = peer_id


class ScanError(PeerStoreError):
    """Raised when listing peers fails."""


class QueryError(PeerStoreError):
    """Raised when a lookup by id or address fails."""


class DeleteError(PeerStoreError):
    """Raised when pruning peers fails."""


class OpenError(PeerStoreError):
    """Raised when a store cannot be opened or its schema created."""


class LockPoisonedError(Exception):
    """Raised by ``ReadWriteLock`` once a writer has failed while holding it."""
