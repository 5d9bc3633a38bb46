"""Tests for the output renderer."""

import json

import pytest

from peerdb.aggregator import aggregate
from peerdb.models import PeerRecord
from peerdb.output import render, render_to_string

# -- Fixtures ----------------------------------------------------------------


def _make_peer(**overrides: object) -> PeerRecord:
    """Create a ``PeerRecord`` with sensible defaults, overridable."""
    defaults: dict = {
        "id": "f" * 128,
        "address": "93.184.216.34",
        "client_version": "Geth/v1.13.5-stable",
        "enode_url": "enode://ff@93.184.216.34:30303",
        "tcp_port": 30303,
        "chain": "mainnet",
        "genesis_block_hash": "0xd4e5",
        "best_block": "0xbeef",
        "total_difficulty": "1",
        "last_seen": "2026-10-18T12:00:00+00:00",
        "capabilities": ["eth/68", "snap/1"],
        "eth_version": 68,
        "country": "Germany",
    }
    defaults.update(overrides)
    return PeerRecord(**defaults)


# -- Table -------------------------------------------------------------------


class TestPeerTable:
    def test_shows_peer_fields(self) -> None:
        out = render_to_string([_make_peer()], "table")
        assert "93.184.216.34" in out
        assert "30303" in out
        assert "Geth/v1.13.5-stable" in out
        assert "Germany" in out
        assert "1 peers" in out

    def test_id_truncated(self) -> None:
        out = render_to_string([_make_peer()], "table")
        assert "f" * 16 in out
        assert "f" * 17 not in out

    def test_missing_city_shown_as_dash(self) -> None:
        out = render_to_string([_make_peer(city=None)], "table")
        assert "—" in out

    def test_empty_list(self) -> None:
        assert "0 peers" in render_to_string([], "table")


class TestStatsTable:
    def test_distributions_rendered(self) -> None:
        out = render_to_string(aggregate([_make_peer()]), "table")
        assert "Clients" in out
        assert "Geth" in out
        assert "Countries" in out
        assert "Capabilities" in out
        assert "snap/1" in out

    def test_no_peers(self) -> None:
        out = render_to_string(aggregate([]), "table")
        assert "No peers to aggregate" in out


# -- JSON --------------------------------------------------------------------


class TestJson:
    def test_peer_list(self) -> None:
        payload = json.loads(render_to_string([_make_peer()], "json"))
        assert payload["count"] == 1
        assert payload["peers"][0]["address"] == "93.184.216.34"
        assert payload["peers"][0]["capabilities"] == ["eth/68", "snap/1"]

    def test_stats(self) -> None:
        payload = json.loads(render_to_string(aggregate([_make_peer()]), "json"))
        assert payload["total"] == 1
        assert payload["client_distribution"] == [["Geth", 1]]


class TestDispatch:
    def test_unknown_format_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown output format"):
            render([], "xml")
