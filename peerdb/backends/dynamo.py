"""DynamoDB peer store: full-item upserts, TTL expiry, GSI lookups.

Table layout (``eth-peer-data``):

* partition key ``peer-id`` (S)
* global secondary index ``peer-ip-index`` on ``peer-ip`` (S)
* ``ttl`` (N, epoch seconds) is the table's TTL attribute; DynamoDB deletes
  expired items in the background, some time after the instant passes.

boto3 is blocking, so every request runs in a worker thread.  Nothing here
retries: a failed request surfaces as the operation's error and the caller
decides whether to try again.  Transport-level retries are whatever botocore
does by default.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from peerdb.backends import TTL, PeerStore
from peerdb.errors import AddError, ErrorKind, MissingTTLError, QueryError, ScanError
from peerdb.models import PeerRecord, format_timestamp
from peerdb.retention import expiry_epoch, freshness_cutoff

if TYPE_CHECKING:
    from peerdb.config import PeerDBConfig

logger = logging.getLogger(__name__)

TABLE_NAME = "eth-peer-data"
IP_INDEX_NAME = "peer-ip-index"
FALLBACK_REGION = "us-west-2"

_SERVICE_ERRORS = (BotoCoreError, ClientError)


@dataclass
class DynamoConfig:
    """Connection settings for the DynamoDB store, built once at startup.

    Attributes:
        table_name: Name of the peer table.
        region: Explicit AWS region.  ``None`` defers to the ambient AWS
            configuration (environment, profile), then ``fallback_region``.
        fallback_region: Region used when nothing else is configured.
        endpoint_url: Custom endpoint (DynamoDB Local, LocalStack).
    """

    table_name: str = TABLE_NAME
    region: str | None = None
    fallback_region: str = FALLBACK_REGION
    endpoint_url: str | None = None

    @classmethod
    def from_peerdb_config(cls, config: PeerDBConfig) -> DynamoConfig:
        return cls(
            table_name=config.table_name,
            region=config.aws_region,
            fallback_region=config.fallback_region,
            endpoint_url=config.dynamodb_endpoint_url,
        )

    def resolve_region(self) -> str:
        """Return the region to use: explicit, ambient, then fallback."""
        if self.region:
            return self.region
        ambient = boto3.session.Session().region_name
        if ambient:
            return ambient
        logger.info(
            "No AWS region configured; falling back to %s", self.fallback_region
        )
        return self.fallback_region


# ---------------------------------------------------------------------------
# Item encoding
# ---------------------------------------------------------------------------


def record_to_item(record: PeerRecord, ttl_epoch: int, source_region: str) -> dict:
    """Encode *record* as a low-level DynamoDB item.

    Numbers travel as strings in the DynamoDB wire format.  Optional
    geolocation fields are left out when unknown.
    """
    item: dict[str, dict[str, Any]] = {
        "peer-id": {"S": record.id},
        "peer-ip": {"S": record.address},
        "client_version": {"S": record.client_version},
        "enode_url": {"S": record.enode_url},
        "port": {"N": str(record.tcp_port)},
        "chain": {"S": record.chain},
        "capabilities": {"L": [{"S": cap} for cap in record.capabilities]},
        "eth_version": {"N": str(record.eth_version)},
        "last_seen": {"S": record.last_seen},
        "source_region": {"S": source_region},
        "genesis_block_hash": {"S": record.genesis_block_hash},
        "best_block": {"S": record.best_block},
        "total_difficulty": {"S": record.total_difficulty},
        "ttl": {"N": str(ttl_epoch)},
    }
    if record.country is not None:
        item["country"] = {"S": record.country}
    if record.city is not None:
        item["city"] = {"S": record.city}
    return item


def _str(item: dict, key: str, default: str = "") -> str:
    value = item.get(key)
    return value["S"] if value and "S" in value else default


def _int(item: dict, key: str) -> int:
    value = item.get(key)
    return int(value["N"]) if value and "N" in value else 0


def item_to_record(item: dict) -> PeerRecord:
    """Decode a low-level DynamoDB item into a ``PeerRecord``."""
    return PeerRecord(
        id=_str(item, "peer-id"),
        address=_str(item, "peer-ip"),
        client_version=_str(item, "client_version"),
        enode_url=_str(item, "enode_url"),
        tcp_port=_int(item, "port"),
        chain=_str(item, "chain"),
        genesis_block_hash=_str(item, "genesis_block_hash"),
        best_block=_str(item, "best_block"),
        total_difficulty=_str(item, "total_difficulty"),
        last_seen=_str(item, "last_seen"),
        capabilities=[
            cap["S"] for cap in item.get("capabilities", {}).get("L", []) if "S" in cap
        ],
        eth_version=_int(item, "eth_version"),
        country=item["country"]["S"] if "country" in item else None,
        city=item["city"]["S"] if "city" in item else None,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class DynamoPeerStore(PeerStore):
    """Peer store backed by a DynamoDB table.

    ``all_peers`` only returns peers seen in the last 24 hours.  Every
    ``add_peer`` call must carry a TTL; the table relies on it to expire
    stale peers.

    Args:
        config: Connection settings.  The region is resolved once, here.
        client: Pre-built ``boto3`` DynamoDB client (mainly for tests).
    """

    def __init__(
        self,
        config: DynamoConfig | None = None,
        client: Any | None = None,
    ) -> None:
        self.config = config or DynamoConfig()
        self.region = self.config.resolve_region()
        self._client = client or boto3.client(
            "dynamodb",
            region_name=self.region,
            endpoint_url=self.config.endpoint_url,
        )
        logger.debug(
            "DynamoDB peer store: table=%s region=%s",
            self.config.table_name,
            self.region,
        )

    async def add_peer(self, record: PeerRecord, ttl: TTL | None = None) -> None:
        if ttl is None:
            raise MissingTTLError(record.id)
        item = record_to_item(record, expiry_epoch(ttl), self.region)
        try:
            await asyncio.to_thread(
                self._client.put_item, TableName=self.config.table_name, Item=item
            )
        except _SERVICE_ERRORS as exc:
            raise AddError(
                f"Failed to store peer {record.id!r}: {exc}", ErrorKind.SERVICE
            ) from exc

    async def all_peers(self, page_size: int | None = None) -> list[PeerRecord]:
        return await self.all_last_peers(freshness_cutoff(), page_size)

    async def all_last_peers(
        self,
        last_seen: str | datetime,
        page_size: int | None = None,
    ) -> list[PeerRecord]:
        """Return up to *page_size* peers seen strictly after *last_seen*.

        Pages are followed internally until the limit is reached or the
        table is exhausted.  The scan is not a snapshot: peers written while
        it runs may or may not show up.

        Args:
            last_seen: Cutoff, as a canonical timestamp string or an aware
                datetime.
            page_size: Maximum number of peers to return (default 1000).

        Raises:
            ScanError: If a scan request failed.
        """
        limit = self._resolve_page_size(page_size)
        if isinstance(last_seen, datetime):
            last_seen = format_timestamp(last_seen)
        if limit == 0:
            return []
        try:
            items = await asyncio.to_thread(self._scan, last_seen, limit)
        except _SERVICE_ERRORS as exc:
            raise ScanError(f"Failed to scan peers: {exc}", ErrorKind.SERVICE) from exc
        return [item_to_record(item) for item in items]

    async def node_by_id(self, peer_id: str) -> list[PeerRecord]:
        try:
            items = await asyncio.to_thread(
                self._query,
                KeyConditionExpression="#id = :id",
                ExpressionAttributeNames={"#id": "peer-id"},
                ExpressionAttributeValues={":id": {"S": peer_id}},
            )
        except _SERVICE_ERRORS as exc:
            raise QueryError(
                f"Failed to look up peer {peer_id!r}: {exc}", ErrorKind.SERVICE
            ) from exc
        return [item_to_record(item) for item in items]

    async def node_by_ip(self, address: str) -> list[PeerRecord]:
        try:
            items = await asyncio.to_thread(
                self._query,
                IndexName=IP_INDEX_NAME,
                KeyConditionExpression="#ip = :ip",
                ExpressionAttributeNames={"#ip": "peer-ip"},
                ExpressionAttributeValues={":ip": {"S": address}},
            )
        except _SERVICE_ERRORS as exc:
            raise QueryError(
                f"Failed to look up address {address!r}: {exc}", ErrorKind.SERVICE
            ) from exc
        return [item_to_record(item) for item in items]

    # -- blocking helpers, run in worker threads --

    def _scan(self, cutoff: str, limit: int) -> list[dict]:
        kwargs: dict[str, Any] = {
            "TableName": self.config.table_name,
            "FilterExpression": "last_seen > :last_seen_parameter",
            "ExpressionAttributeValues": {":last_seen_parameter": {"S": cutoff}},
            "Limit": limit,
        }
        items: list[dict] = []
        while len(items) < limit:
            response = self._client.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return items[:limit]

    def _query(self, **params: Any) -> list[dict]:
        kwargs: dict[str, Any] = {"TableName": self.config.table_name, **params}
        items: list[dict] = []
        while True:
            response = self._client.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key
