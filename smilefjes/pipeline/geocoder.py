"""Free-text address geocoding against the Kartverket address API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from pyproj import CRS, Transformer

from smilefjes.common.address import normalise_geocode_query
from smilefjes.common.constants import KARTVERKET_SEARCH_URL
from smilefjes.common.http import HttpClient, LookupResponse
from smilefjes.common.models import GeoCoordinate
from smilefjes.pipeline.cache import GeocodeCache

SERVICE = "kartverket"
WGS84_EPSG = 4326

logger = logging.getLogger(__name__)


class KartverketClient:
    def __init__(self, http_client: HttpClient, *, search_url: str = KARTVERKET_SEARCH_URL) -> None:
        self.http_client = http_client
        self.search_url = search_url

    def search(self, query: str) -> LookupResponse:
        return self.http_client.lookup_json(
            self.search_url,
            service=SERVICE,
            params={
                "sok": query,
                "treffPerSide": "1",
                "side": "0",
                "filtrer": "adresser.representasjonspunkt",
            },
        )


def _parse_epsg(value: Any) -> int | None:
    if value is None:
        return None
    text = str(value).strip().upper()
    if text.startswith("EPSG:"):
        text = text[len("EPSG:") :]
    try:
        return int(text)
    except ValueError:
        return None


def _transform(coordinate: GeoCoordinate, source_epsg: int, target_epsg: int) -> GeoCoordinate | None:
    if source_epsg == target_epsg:
        return coordinate
    try:
        transformer = Transformer.from_crs(CRS.from_epsg(source_epsg), CRS.from_epsg(target_epsg), always_xy=True)
        lon, lat = transformer.transform(coordinate.lon, coordinate.lat)
    except Exception:
        logger.warning("cannot transform point from EPSG:%s to EPSG:%s", source_epsg, target_epsg)
        return None
    return GeoCoordinate(lon=lon, lat=lat)


def extract_representative_point(payload: Any, *, target_epsg: int = WGS84_EPSG) -> GeoCoordinate | None:
    """Pull the first result's representative point out of a search response."""
    if not isinstance(payload, dict):
        return None
    addresses = payload.get("adresser")
    if not isinstance(addresses, list) or not addresses:
        return None
    first = addresses[0]
    if not isinstance(first, dict):
        return None
    point = first.get("representasjonspunkt")
    coordinate = GeoCoordinate.from_payload(point)
    if coordinate is None:
        return None

    source_epsg = _parse_epsg(point.get("epsg"))
    if source_epsg is not None:
        coordinate = _transform(coordinate, source_epsg, target_epsg)
    if coordinate is None:
        return None
    if target_epsg == WGS84_EPSG and not coordinate.in_wgs84_range():
        logger.warning("discarding out-of-range point lon=%s lat=%s", coordinate.lon, coordinate.lat)
        return None
    return coordinate


@dataclass
class GeocodeStats:
    attempts: int = 0
    hits: int = 0
    cache_hits: int = 0


class Geocoder:
    """Address -> coordinate, memoized on the exact address text.

    Only successful lookups are cached, so failures are retried on a later run.
    """

    def __init__(
        self,
        client: KartverketClient,
        cache: GeocodeCache,
        *,
        delay_ms: int = 0,
        target_epsg: int = WGS84_EPSG,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.delay_ms = delay_ms
        self.target_epsg = target_epsg
        self.sleep = sleep
        self.stats = GeocodeStats()

    def geocode(self, address: str) -> GeoCoordinate | None:
        cached = self.cache.get(address)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        self.stats.attempts += 1
        response = self.client.search(normalise_geocode_query(address))
        coordinate = None
        if response.ok:
            coordinate = extract_representative_point(response.payload, target_epsg=self.target_epsg)
        if coordinate is not None:
            self.cache.set(address, coordinate)
            self.stats.hits += 1

        self.sleep(self.delay_ms / 1000)
        return coordinate
