from __future__ import annotations

import json
from pathlib import Path

from pyproj import Transformer

from smilefjes.common.http import LookupResponse
from smilefjes.common.models import GeoCoordinate
from smilefjes.pipeline.cache import GeocodeCache
from smilefjes.pipeline.geocoder import Geocoder, KartverketClient, extract_representative_point


class FakeKartverketClient:
    def __init__(self, response: LookupResponse):
        self.response = response
        self.queries: list[str] = []

    def search(self, query: str) -> LookupResponse:
        self.queries.append(query)
        return self.response


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _fixture_payload() -> dict:
    return json.loads(Path("tests/fixtures/kartverket/sok_storgata.json").read_text(encoding="utf-8"))


def test_second_geocode_of_same_address_uses_cache_without_delay():
    client = FakeKartverketClient(LookupResponse(200, _fixture_payload()))
    sleep = RecordingSleep()
    geocoder = Geocoder(client, GeocodeCache(), delay_ms=80, sleep=sleep)

    first = geocoder.geocode("Storgata 1, 0150 OSLO")
    second = geocoder.geocode("Storgata 1, 0150 OSLO")

    assert first == GeoCoordinate(lon=10.75225, lat=59.91273)
    assert second == first
    assert client.queries == ["Storgata 1 0150 OSLO"]
    assert sleep.calls == [0.08]
    assert geocoder.stats.attempts == 1
    assert geocoder.stats.cache_hits == 1


def test_cache_is_keyed_on_exact_address_text():
    cache = GeocodeCache()
    geocoder = Geocoder(FakeKartverketClient(LookupResponse(200, _fixture_payload())), cache, sleep=RecordingSleep())

    geocoder.geocode("Storgata 1, 0150 OSLO")

    assert list(cache) == ["Storgata 1, 0150 OSLO"]


def test_failed_lookup_is_not_cached_and_still_delays():
    sleep = RecordingSleep()
    cache = GeocodeCache()
    client = FakeKartverketClient(LookupResponse(200, {"adresser": []}))
    geocoder = Geocoder(client, cache, delay_ms=80, sleep=sleep)

    assert geocoder.geocode("Ukjent vei 1") is None
    assert geocoder.geocode("Ukjent vei 1") is None

    assert len(cache) == 0
    assert len(client.queries) == 2
    assert sleep.calls == [0.08, 0.08]


def test_non_2xx_yields_none():
    cache = GeocodeCache()
    geocoder = Geocoder(FakeKartverketClient(LookupResponse(500)), cache, sleep=RecordingSleep())
    assert geocoder.geocode("Storgata 1") is None
    assert len(cache) == 0


def test_extract_point_rejects_malformed_payloads():
    assert extract_representative_point(None) is None
    assert extract_representative_point({"adresser": "nope"}) is None
    assert extract_representative_point({"adresser": [{}]}) is None
    assert extract_representative_point({"adresser": [{"representasjonspunkt": {"lat": "59.9", "lon": "10.7"}}]}) is None


def test_extract_point_without_epsg_is_taken_as_is():
    payload = {"adresser": [{"representasjonspunkt": {"lat": 59.9, "lon": 10.7}}]}
    assert extract_representative_point(payload) == GeoCoordinate(lon=10.7, lat=59.9)


def test_extract_point_transforms_projected_crs_to_wgs84():
    transformer = Transformer.from_crs("EPSG:4326", "EPSG:25833", always_xy=True)
    x, y = transformer.transform(10.75225, 59.91273)
    payload = {"adresser": [{"representasjonspunkt": {"epsg": "EPSG:25833", "lat": y, "lon": x}}]}

    point = extract_representative_point(payload)

    assert point is not None
    assert abs(point.lat - 59.91273) < 1e-6
    assert abs(point.lon - 10.75225) < 1e-6


def test_extract_point_etrs89_is_close_to_wgs84():
    payload = {"adresser": [{"representasjonspunkt": {"epsg": "EPSG:4258", "lat": 59.91273, "lon": 10.75225}}]}

    point = extract_representative_point(payload)

    assert point is not None
    assert abs(point.lat - 59.91273) < 1e-4
    assert abs(point.lon - 10.75225) < 1e-4


class FakeHttpClient:
    def __init__(self):
        self.calls: list[tuple[str, dict]] = []

    def lookup_json(self, url: str, **kwargs) -> LookupResponse:
        self.calls.append((url, kwargs))
        return LookupResponse(200, {"adresser": []})


def test_kartverket_client_sends_top_result_query():
    http = FakeHttpClient()
    KartverketClient(http).search("Storgata 1 0150 OSLO")

    url, kwargs = http.calls[0]
    assert url == "https://ws.geonorge.no/adresser/v1/sok"
    assert kwargs["params"] == {
        "sok": "Storgata 1 0150 OSLO",
        "treffPerSide": "1",
        "side": "0",
        "filtrer": "adresser.representasjonspunkt",
    }


def test_extract_point_rejects_out_of_range_coordinates():
    payload = {"adresser": [{"representasjonspunkt": {"epsg": "EPSG:4326", "lat": 259.7, "lon": 10.2}}]}
    assert extract_representative_point(payload) is None

    payload = {"adresser": [{"representasjonspunkt": {"lat": 59.9, "lon": 190.0}}]}
    assert extract_representative_point(payload) is None


def test_out_of_range_point_is_not_cached():
    response = LookupResponse(200, {"adresser": [{"representasjonspunkt": {"lat": 259.7, "lon": 10.2}}]})
    client = FakeKartverketClient(response)
    cache = GeocodeCache()
    geocoder = Geocoder(client, cache, delay_ms=0, sleep=RecordingSleep())

    assert geocoder.geocode("Kirkegata 5, 3015 DRAMMEN") is None
    assert "Kirkegata 5, 3015 DRAMMEN" not in cache
    assert geocoder.stats.hits == 0
