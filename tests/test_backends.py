"""Tests for peerdb.backends — store selection and the shared contract."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from peerdb.backends import PeerStore, make_store
from peerdb.backends.dynamo import DynamoPeerStore
from peerdb.backends.memory import InMemoryPeerStore
from peerdb.backends.sqlite import SqlitePeerStore
from peerdb.config import PeerDBConfig
from peerdb.errors import AddError, DeleteError, PeerStoreError, QueryError, ScanError


class TestMakeStore:
    @pytest.mark.asyncio
    async def test_local_db_selects_sqlite(self, tmp_path) -> None:
        cfg = PeerDBConfig(local_db=True, db_path=str(tmp_path / "peers.db"))
        store = await make_store(cfg)
        try:
            assert isinstance(store, SqlitePeerStore)
            assert store.db_path == str(tmp_path / "peers.db")
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_default_selects_dynamodb(self) -> None:
        cfg = PeerDBConfig(table_name="peers-test", aws_region="eu-west-1")
        with patch("peerdb.backends.dynamo.boto3.client", return_value=MagicMock()):
            store = await make_store(cfg)
        assert isinstance(store, DynamoPeerStore)
        assert store.config.table_name == "peers-test"
        assert store.region == "eu-west-1"


class TestContract:
    def test_all_backends_are_peer_stores(self) -> None:
        for cls in (InMemoryPeerStore, SqlitePeerStore, DynamoPeerStore):
            assert issubclass(cls, PeerStore)

    def test_error_families_share_base(self) -> None:
        for cls in (AddError, ScanError, QueryError, DeleteError):
            assert issubclass(cls, PeerStoreError)

    @pytest.mark.asyncio
    async def test_context_manager_closes(self) -> None:
        store = InMemoryPeerStore()
        with patch.object(store, "close", new_callable=AsyncMock) as close:
            async with store as entered:
                assert entered is store
        close.assert_awaited_once()
