"""Tests for peerdb.retention — cutoffs and TTL normalisation."""

from datetime import UTC, datetime, timedelta

import pytest

from peerdb.retention import (
    FRESHNESS_WINDOW,
    expiry_epoch,
    freshness_cutoff,
    prune_cutoff,
)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


class TestFreshnessCutoff:
    def test_default_window_is_24_hours(self) -> None:
        assert FRESHNESS_WINDOW == timedelta(hours=24)
        assert freshness_cutoff(NOW) == "2026-10-17T12:00:00+00:00"

    def test_custom_window(self) -> None:
        cutoff = freshness_cutoff(NOW, window=timedelta(hours=1))
        assert cutoff == "2026-10-18T11:00:00+00:00"


class TestPruneCutoff:
    def test_days_subtracted(self) -> None:
        assert prune_cutoff(30, NOW) == "2026-09-18T12:00:00+00:00"

    def test_zero_days_is_now(self) -> None:
        assert prune_cutoff(0, NOW) == "2026-10-18T12:00:00+00:00"

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="age_days"):
            prune_cutoff(-1, NOW)


class TestExpiryEpoch:
    def test_int_passed_through(self) -> None:
        assert expiry_epoch(1_800_000_000) == 1_800_000_000

    def test_aware_datetime(self) -> None:
        assert expiry_epoch(NOW) == int(NOW.timestamp())

    def test_relative_duration(self) -> None:
        assert expiry_epoch(timedelta(days=7), now=NOW) == int(
            (NOW + timedelta(days=7)).timestamp()
        )

    def test_naive_datetime_rejected(self) -> None:
        with pytest.raises(ValueError):
            expiry_epoch(datetime(2026, 10, 18))

    def test_bool_rejected(self) -> None:
        with pytest.raises(TypeError):
            expiry_epoch(True)

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(TypeError):
            expiry_epoch("1800000000")  # type: ignore[arg-type]
