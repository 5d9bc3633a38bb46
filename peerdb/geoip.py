"""Geo-IP enrichment: fill in country and city for peer records."""

import logging

import geoip2.database
import geoip2.errors

from peerdb.config import PeerDBConfig
from peerdb.models import PeerRecord

logger = logging.getLogger(__name__)


class GeoIPReader:
    """Thin wrapper around a MaxMind GeoLite2-City database.

    The reader is tolerant of a missing database file: if the path is
    ``None`` or points to a non-existent file, lookups simply return
    ``None``.

    Args:
        city_db_path: Path to ``GeoLite2-City.mmdb``, or ``None``.
    """

    def __init__(self, city_db_path: str | None = None) -> None:
        self._city_reader: geoip2.database.Reader | None = None

        if city_db_path:
            try:
                self._city_reader = geoip2.database.Reader(city_db_path)
                logger.debug("Opened GeoLite2-City DB: %s", city_db_path)
            except FileNotFoundError:
                logger.warning(
                    "GeoLite2-City DB not found at %s; "
                    "city/country enrichment disabled",
                    city_db_path,
                )

    def close(self) -> None:
        """Close the underlying database reader."""
        if self._city_reader:
            self._city_reader.close()

    def lookup_city(self, ip: str) -> dict | None:
        """Look up city and country for an IP address.

        Args:
            ip: IPv4 or IPv6 address string.

        Returns:
            A dict with keys ``city`` and ``country``; or ``None`` if the
            lookup fails.
        """
        if not self._city_reader:
            return None
        try:
            resp = self._city_reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            logger.debug("City lookup failed for %s", ip)
            return None

        return {"city": resp.city.name, "country": resp.country.name}


def enrich(records: list[PeerRecord], config: PeerDBConfig) -> list[PeerRecord]:
    """Fill in missing ``country`` / ``city`` on *records* in place.

    Values the producer already supplied are left untouched.

    Args:
        records: Peer records, possibly without geolocation.
        config: Application configuration with the MaxMind DB path.

    Returns:
        The same list.
    """
    if not config.maxmind_city_db:
        return records

    reader = GeoIPReader(city_db_path=config.maxmind_city_db)
    try:
        for record in records:
            _enrich_record(record, reader)
    finally:
        reader.close()

    return records


def _enrich_record(record: PeerRecord, reader: GeoIPReader) -> None:
    if record.country is not None and record.city is not None:
        return
    city_data = reader.lookup_city(record.address)
    if not city_data:
        return
    if record.country is None:
        record.country = city_data["country"]
    if record.city is None:
        record.city = city_data["city"]
