"""Per-record address resolution, geocoding and feature emission."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Iterable

from smilefjes.common.address import build_fallback_address, normalise_org_number
from smilefjes.common.constants import ADDRESS_SOURCE_FALLBACK, ADDRESS_SOURCE_REGISTRY
from smilefjes.common.models import InspectionRecord, OutputFeature
from smilefjes.common.rating import derive_record_rating, legacy_rating
from smilefjes.pipeline.geocoder import Geocoder
from smilefjes.pipeline.registry import RegistryResolver

logger = logging.getLogger(__name__)


@dataclass
class AssemblyStats:
    processed: int = 0
    registry_address_hits: int = 0
    fallback_addresses: int = 0
    dropped_no_address: int = 0
    dropped_no_coordinate: int = 0
    features: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class FeatureAssembler:
    def __init__(self, resolver: RegistryResolver, geocoder: Geocoder) -> None:
        self.resolver = resolver
        self.geocoder = geocoder
        self.stats = AssemblyStats()

    def _best_address(self, record: InspectionRecord, org_number: str | None) -> tuple[str | None, str]:
        if org_number is not None:
            registry_address = self.resolver.resolve_address(org_number)
            if registry_address:
                self.stats.registry_address_hits += 1
                return registry_address, ADDRESS_SOURCE_REGISTRY

        fallback = build_fallback_address(record)
        if fallback:
            self.stats.fallback_addresses += 1
        return fallback, ADDRESS_SOURCE_FALLBACK

    def assemble(self, record: InspectionRecord) -> OutputFeature | None:
        self.stats.processed += 1
        org_number = normalise_org_number(record.orgnummer)

        address, address_source = self._best_address(record, org_number)
        if not address:
            self.stats.dropped_no_address += 1
            logger.debug("dropping %s: no usable address", record.tilsynsobjektid)
            return None

        coordinate = self.geocoder.geocode(address)
        if coordinate is None:
            self.stats.dropped_no_coordinate += 1
            logger.debug("dropping %s: no coordinate for %r", record.tilsynsobjektid, address)
            return None

        self.stats.features += 1
        return OutputFeature(
            tilsynsobjektid=record.tilsynsobjektid,
            orgnummer=org_number,
            navn=record.navn,
            adresse=address,
            dato=record.dato,
            karakter=legacy_rating(record.total_karakter),
            status=record.status,
            adressekilde=address_source,
            coordinate=coordinate,
            smilefjes=derive_record_rating(record.criteria, record.total_karakter),
            criteria=dict(record.criteria),
        )

    def assemble_all(self, records: Iterable[InspectionRecord]) -> list[OutputFeature]:
        features: list[OutputFeature] = []
        for record in records:
            feature = self.assemble(record)
            if feature is not None:
                features.append(feature)
        return features
