"""Business registry (Enhetsregisteret) lookups with a persisted cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

from smilefjes.common.address import normalise_org_number, registry_display_address
from smilefjes.common.constants import BRREG_MAIN_ENTITY_URL, BRREG_SUB_ENTITY_URL
from smilefjes.common.http import HttpClient, LookupResponse
from smilefjes.common.models import RegistryEntity
from smilefjes.pipeline.cache import RegistryCache

SERVICE = "brreg"

logger = logging.getLogger(__name__)


class BrregClient:
    """Thin wrapper around the sub-entity and main-entity endpoints."""

    def __init__(
        self,
        http_client: HttpClient,
        *,
        sub_entity_url: str = BRREG_SUB_ENTITY_URL,
        main_entity_url: str = BRREG_MAIN_ENTITY_URL,
    ) -> None:
        self.http_client = http_client
        self.sub_entity_url = sub_entity_url
        self.main_entity_url = main_entity_url

    def fetch_sub_entity(self, org_number: str) -> LookupResponse:
        return self.http_client.lookup_json(
            self.sub_entity_url.format(org_number=quote(org_number)),
            service=SERVICE,
        )

    def fetch_main_entity(self, org_number: str) -> LookupResponse:
        return self.http_client.lookup_json(
            self.main_entity_url.format(org_number=quote(org_number)),
            service=SERVICE,
        )


@dataclass
class RegistryStats:
    lookups: int = 0
    cache_hits: int = 0
    not_found: int = 0
    transient_failures: int = 0


class RegistryResolver:
    """Resolves organization numbers to registry entities, once per number.

    Every cache miss costs one or two HTTP calls followed by a fixed delay.
    Numbers that are not exactly nine digits are never looked up or cached.
    """

    def __init__(
        self,
        client: BrregClient,
        cache: RegistryCache,
        *,
        delay_ms: int = 0,
        cache_transient_failures: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.delay_ms = delay_ms
        self.cache_transient_failures = cache_transient_failures
        self.sleep = sleep
        self.stats = RegistryStats()

    def _fetch(self, org_number: str) -> tuple[RegistryEntity | None, bool]:
        transient = False
        for fetch in (self.client.fetch_sub_entity, self.client.fetch_main_entity):
            response = fetch(org_number)
            if response.ok:
                entity = RegistryEntity.from_payload(response.payload)
                if entity is not None:
                    return entity, False
            elif response.transient:
                transient = True
        return None, transient

    def resolve(self, org_number: str | None) -> RegistryEntity | None:
        valid = normalise_org_number(org_number)
        if valid is None:
            return None

        if valid in self.cache:
            self.stats.cache_hits += 1
            return self.cache.get(valid)

        self.stats.lookups += 1
        entity, transient = self._fetch(valid)
        if entity is None:
            if transient:
                self.stats.transient_failures += 1
            else:
                self.stats.not_found += 1

        if entity is not None or not transient or self.cache_transient_failures:
            self.cache.set(valid, entity)
        else:
            logger.info("not caching transient registry failure for %s", valid)

        self.sleep(self.delay_ms / 1000)
        return entity

    def resolve_address(self, org_number: str | None) -> str | None:
        return registry_display_address(self.resolve(org_number))
