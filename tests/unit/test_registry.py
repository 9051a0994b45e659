from __future__ import annotations

import json
from pathlib import Path

from smilefjes.common.http import LookupResponse
from smilefjes.pipeline.cache import RegistryCache
from smilefjes.pipeline.registry import BrregClient, RegistryResolver


class FakeBrregClient:
    def __init__(self, sub: dict[str, LookupResponse] | None = None, main: dict[str, LookupResponse] | None = None):
        self.sub = sub or {}
        self.main = main or {}
        self.calls: list[tuple[str, str]] = []

    def fetch_sub_entity(self, org_number: str) -> LookupResponse:
        self.calls.append(("sub", org_number))
        return self.sub.get(org_number, LookupResponse(status_code=404))

    def fetch_main_entity(self, org_number: str) -> LookupResponse:
        self.calls.append(("main", org_number))
        return self.main.get(org_number, LookupResponse(status_code=404))


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _entity_payload(org_number: str, street: str) -> dict:
    return {
        "organisasjonsnummer": org_number,
        "navn": "TEST AS",
        "forretningsadresse": {"adresse": [street], "postnummer": "0150", "poststed": "OSLO"},
    }


def _resolver(client, *, cache=None, delay_ms=30, cache_transient_failures=True, sleep=None):
    return RegistryResolver(
        client,
        cache if cache is not None else RegistryCache(),
        delay_ms=delay_ms,
        cache_transient_failures=cache_transient_failures,
        sleep=sleep or RecordingSleep(),
    )


def test_sub_entity_preferred_over_main_entity():
    fixture = json.loads(Path("tests/fixtures/brreg/underenhet_974760673.json").read_text(encoding="utf-8"))
    client = FakeBrregClient(
        sub={"974760673": LookupResponse(200, fixture)},
        main={"974760673": LookupResponse(200, _entity_payload("974760673", "Annen gate 99"))},
    )
    resolver = _resolver(client)

    assert resolver.resolve_address("974760673") == "Storgata 1, 0150 OSLO"
    assert client.calls == [("sub", "974760673")]


def test_main_entity_used_when_sub_entity_missing():
    client = FakeBrregClient(main={"912345678": LookupResponse(200, _entity_payload("912345678", "Hovedgata 2"))})
    resolver = _resolver(client)

    entity = resolver.resolve("912345678")

    assert entity is not None
    assert entity.organisasjonsnummer == "912345678"
    assert client.calls == [("sub", "912345678"), ("main", "912345678")]


def test_sub_entity_without_org_number_falls_through():
    client = FakeBrregClient(
        sub={"912345678": LookupResponse(200, {"navn": "no number"})},
        main={"912345678": LookupResponse(200, _entity_payload("912345678", "Hovedgata 2"))},
    )
    assert _resolver(client).resolve("912345678").organisasjonsnummer == "912345678"


def test_not_found_is_cached_as_null_and_not_looked_up_again():
    client = FakeBrregClient()
    sleep = RecordingSleep()
    cache = RegistryCache()
    resolver = _resolver(client, cache=cache, sleep=sleep)

    assert resolver.resolve("912345678") is None
    assert resolver.resolve("912345678") is None

    assert "912345678" in cache
    assert cache.get("912345678") is None
    assert len(client.calls) == 2
    assert sleep.calls == [0.03]
    assert resolver.stats.lookups == 1
    assert resolver.stats.cache_hits == 1
    assert resolver.stats.not_found == 1


def test_invalid_org_number_skips_lookup_and_cache():
    client = FakeBrregClient()
    sleep = RecordingSleep()
    cache = RegistryCache()
    resolver = _resolver(client, cache=cache, sleep=sleep)

    assert resolver.resolve("12345") is None
    assert resolver.resolve(None) is None

    assert client.calls == []
    assert sleep.calls == []
    assert len(cache) == 0


def test_transient_failure_is_cached_by_default():
    client = FakeBrregClient(sub={"912345678": LookupResponse(503)})
    cache = RegistryCache()
    resolver = _resolver(client, cache=cache)

    assert resolver.resolve("912345678") is None
    assert "912345678" in cache
    assert resolver.stats.transient_failures == 1


def test_transient_failure_left_uncached_when_disabled():
    client = FakeBrregClient(sub={"912345678": LookupResponse(500)}, main={"912345678": LookupResponse(500)})
    sleep = RecordingSleep()
    cache = RegistryCache()
    resolver = _resolver(client, cache=cache, cache_transient_failures=False, sleep=sleep)

    assert resolver.resolve("912345678") is None
    assert "912345678" not in cache
    assert sleep.calls == [0.03]

    resolver.resolve("912345678")
    assert len(client.calls) == 4


def test_preseeded_cache_short_circuits_lookup(tmp_path: Path):
    cache_path = tmp_path / "brreg-cache.json"
    cache_path.write_text(
        json.dumps({"974760673": _entity_payload("974760673", "Cachegata 3"), "912345678": None}),
        encoding="utf-8",
    )
    client = FakeBrregClient()
    resolver = _resolver(client, cache=RegistryCache.load(cache_path))

    assert resolver.resolve_address("974760673") == "Cachegata 3, 0150 OSLO"
    assert resolver.resolve_address("912345678") is None
    assert client.calls == []


class FakeHttpClient:
    def __init__(self):
        self.urls: list[str] = []

    def lookup_json(self, url: str, **_kwargs) -> LookupResponse:
        self.urls.append(url)
        return LookupResponse(404)


def test_brreg_client_formats_endpoint_urls():
    http = FakeHttpClient()
    client = BrregClient(http)

    client.fetch_sub_entity("974760673")
    client.fetch_main_entity("974760673")

    assert http.urls == [
        "https://data.brreg.no/enhetsregisteret/api/underenheter/974760673",
        "https://data.brreg.no/enhetsregisteret/api/enheter/974760673",
    ]
