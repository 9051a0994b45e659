"""GeoJSON export for the map client."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from smilefjes.common.fs import write_json
from smilefjes.common.models import OutputFeature


def build_feature_collection(features: Iterable[OutputFeature]) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [feature.to_geojson() for feature in features],
    }


def write_geojson(path: Path, collection: dict) -> Path:
    write_json(path, collection, compact=True)
    return path
