"""End-to-end build: ingest, reduce, resolve, export."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from smilefjes.common.http import HttpClient
from smilefjes.common.logging import log_event
from smilefjes.common.time_utils import utc_timestamp_iso
from smilefjes.ingest.source import load_inspection_records
from smilefjes.pipeline.assemble import FeatureAssembler
from smilefjes.pipeline.cache import GeocodeCache, RegistryCache
from smilefjes.pipeline.export import build_feature_collection, write_geojson
from smilefjes.pipeline.geocoder import Geocoder, KartverketClient
from smilefjes.pipeline.reduce import latest_per_entity, limit_entities
from smilefjes.pipeline.registry import BrregClient, RegistryResolver
from smilefjes.pipeline.reports import rating_distribution, write_run_summary
from smilefjes.pipeline.validate import validate_feature_collection

logger = logging.getLogger(__name__)


def _stage(stage: str, event: str, **fields) -> None:
    log_event(logger, f"stage {event.lower()}", stage=stage, event=f"STAGE_{event}", status="ok", **fields)


def run_build(
    cfg: dict,
    *,
    data_dir: Path,
    output_path: Path,
    run_id: str,
    source: str | None = None,
    http_client: HttpClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Run one batch and return the summary written to the run report.

    Caches are written once, after every record has been processed (plus any
    periodic flushes configured under ``cache.flush_every``). An exception
    before that point leaves the cache files as they were when the run started.
    """
    started_at = utc_timestamp_iso()
    flush_every = int(cfg["cache"].get("flush_every", 0))
    registry_cache = RegistryCache.load(data_dir / cfg["registry"]["cache_filename"], flush_every=flush_every)
    geocode_cache = GeocodeCache.load(data_dir / cfg["geocoder"]["cache_filename"], flush_every=flush_every)

    owns_client = http_client is None
    client = http_client or HttpClient()
    try:
        _stage("ingest", "START")
        records = load_inspection_records(
            source or cfg["source"]["url"],
            delimiter=cfg["source"]["delimiter"],
            http_client=client,
        )
        _stage("ingest", "END", rows_out=len(records))

        _stage("reduce", "START", rows_in=len(records))
        latest = latest_per_entity(records)
        selected = limit_entities(latest, int(cfg["limits"]["max_features"]))
        _stage("reduce", "END", rows_in=len(records), rows_out=len(selected))

        _stage("resolve", "START", rows_in=len(selected))
        resolver = RegistryResolver(
            BrregClient(
                client,
                sub_entity_url=cfg["registry"]["sub_entity_url"],
                main_entity_url=cfg["registry"]["main_entity_url"],
            ),
            registry_cache,
            delay_ms=int(cfg["registry"]["delay_ms"]),
            cache_transient_failures=bool(cfg["registry"].get("cache_transient_failures", True)),
            sleep=sleep,
        )
        geocoder = Geocoder(
            KartverketClient(client, search_url=cfg["geocoder"]["search_url"]),
            geocode_cache,
            delay_ms=int(cfg["geocoder"]["delay_ms"]),
            target_epsg=int(cfg["geocoder"].get("target_epsg", 4326)),
            sleep=sleep,
        )
        assembler = FeatureAssembler(resolver, geocoder)
        features = assembler.assemble_all(selected)
        _stage("resolve", "END", rows_in=len(selected), rows_out=len(features))
    finally:
        if owns_client:
            client.close()

    registry_cache.flush()
    geocode_cache.flush()

    _stage("validate", "START", rows_in=len(features))
    collection = build_feature_collection(features)
    validate_feature_collection(collection)
    _stage("validate", "END", rows_out=len(features))

    _stage("export", "START", rows_in=len(features))
    write_geojson(output_path, collection)
    _stage("export", "END", rows_out=len(features))

    counts = {
        "brreg_lookups": resolver.stats.lookups,
        "brreg_cache_hits": resolver.stats.cache_hits,
        "brreg_not_found": resolver.stats.not_found,
        "brreg_transient_failures": resolver.stats.transient_failures,
        "geocode_attempts": geocoder.stats.attempts,
        "geocode_hits": geocoder.stats.hits,
        "geocode_cache_hits": geocoder.stats.cache_hits,
        **assembler.stats.to_dict(),
    }
    log_event(logger, f"wrote {len(features)} features to {output_path}", event="RUN_COUNTS", status="ok", counts=counts)

    summary = {
        "started_at": started_at,
        "finished_at": utc_timestamp_iso(),
        "source": source or cfg["source"]["url"],
        "source_rows": len(records),
        "unique_entities": len(latest),
        "processed_entities": len(selected),
        "counts": counts,
        "rating_distribution": rating_distribution(features),
        "output_path": str(output_path),
        "registry_cache": {"path": str(registry_cache.path), "entries": len(registry_cache)},
        "geocode_cache": {"path": str(geocode_cache.path), "entries": len(geocode_cache)},
    }
    write_run_summary(data_dir, run_id=run_id, payload=summary)
    return summary
