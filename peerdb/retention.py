"""Retention policy: freshness window, prune cutoffs, TTL expiry instants."""

import logging
from datetime import datetime, timedelta

from peerdb.models import format_timestamp, utc_now

logger = logging.getLogger(__name__)

# Durable backends only report peers seen within this window.
FRESHNESS_WINDOW = timedelta(hours=24)


def freshness_cutoff(
    now: datetime | None = None,
    window: timedelta = FRESHNESS_WINDOW,
) -> str:
    """Return the oldest ``last_seen`` still considered fresh.

    Args:
        now: Reference instant (default: current UTC time).
        window: Freshness window (default: 24 hours).
    """
    return format_timestamp((now or utc_now()) - window)


def prune_cutoff(age_days: int, now: datetime | None = None) -> str:
    """Return the ``last_seen`` below which records are pruned.

    Args:
        age_days: Maximum age to keep, in days.
        now: Reference instant (default: current UTC time).

    Raises:
        ValueError: If *age_days* is negative.
    """
    if age_days < 0:
        raise ValueError(f"age_days must be >= 0, got {age_days}")
    return format_timestamp((now or utc_now()) - timedelta(days=age_days))


def expiry_epoch(
    ttl: int | datetime | timedelta,
    now: datetime | None = None,
) -> int:
    """Normalise a TTL to absolute epoch seconds.

    Args:
        ttl: Absolute epoch seconds, an aware datetime, or a duration
            relative to *now*.
        now: Reference instant for relative durations (default: current
            UTC time).

    Raises:
        ValueError: If *ttl* is a naive datetime.
        TypeError: If *ttl* is of an unsupported type.
    """
    # bool is an int subclass; a True TTL is almost certainly a bug.
    if isinstance(ttl, bool):
        raise TypeError("ttl must be an epoch int, datetime or timedelta")
    if isinstance(ttl, int):
        return ttl
    if isinstance(ttl, timedelta):
        return int(((now or utc_now()) + ttl).timestamp())
    if isinstance(ttl, datetime):
        if ttl.tzinfo is None:
            raise ValueError("ttl datetimes must be timezone-aware")
        return int(ttl.timestamp())
    raise TypeError("ttl must be an epoch int, datetime or timedelta")
