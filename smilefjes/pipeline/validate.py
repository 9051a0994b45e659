"""Contract checks for the emitted FeatureCollection."""

from __future__ import annotations

import math
from collections import Counter
from pathlib import Path

from smilefjes.common.constants import ADDRESS_SOURCE_REGISTRY, ADDRESS_SOURCES
from smilefjes.common.errors import ContractError, StageError
from smilefjes.common.fs import read_json

REQUIRED_PROPERTIES = (
    "tilsynsobjektid",
    "orgnummer",
    "navn",
    "adresse",
    "dato",
    "karakter",
    "status",
    "adressekilde",
)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _valid_lon_lat(coordinates: object) -> bool:
    if not isinstance(coordinates, list) or len(coordinates) != 2:
        return False
    lon, lat = coordinates
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) for v in (lon, lat)):
        return False
    return -180 <= lon <= 180 and -90 <= lat <= 90


def _feature_errors(index: int, feature: object) -> list[str]:
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        return [f"features[{index}]: NOT_A_FEATURE"]

    errors: list[str] = []
    geometry = feature.get("geometry") or {}
    if geometry.get("type") != "Point" or not _valid_lon_lat(geometry.get("coordinates")):
        errors.append(f"features[{index}]: INVALID_POINT")

    properties = feature.get("properties") or {}
    missing = [key for key in REQUIRED_PROPERTIES if key not in properties]
    if missing:
        errors.append(f"features[{index}]: MISSING_PROPERTIES {','.join(missing)}")
    if properties.get("adressekilde") not in ADDRESS_SOURCES:
        errors.append(f"features[{index}]: UNKNOWN_ADDRESS_SOURCE")
    if not _is_int(properties.get("karakter")):
        errors.append(f"features[{index}]: NON_INTEGER_RATING")
    if "smilefjes" in properties and not _is_int(properties["smilefjes"]):
        errors.append(f"features[{index}]: NON_INTEGER_SMILEFJES")
    if not properties.get("adresse"):
        errors.append(f"features[{index}]: EMPTY_ADDRESS")
    return errors


def validate_feature_collection(collection: object) -> dict:
    """Raise ``ContractError`` listing every violation; return a small summary otherwise."""
    if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
        raise ContractError("NOT_A_FEATURE_COLLECTION")
    features = collection.get("features")
    if not isinstance(features, list):
        raise ContractError("FEATURES_NOT_A_LIST")

    errors: list[str] = []
    for index, feature in enumerate(features):
        errors.extend(_feature_errors(index, feature))

    ids = [
        (feature.get("properties") or {}).get("tilsynsobjektid")
        for feature in features
        if isinstance(feature, dict)
    ]
    duplicates = sorted(str(key) for key, count in Counter(ids).items() if count > 1)
    if duplicates:
        errors.append(f"DUPLICATE_ENTITY_IDS {','.join(duplicates)}")

    if errors:
        raise ContractError(";".join(errors))

    return {
        "feature_count": len(features),
        "registry_addresses": sum(
            1 for feature in features if feature["properties"]["adressekilde"] == ADDRESS_SOURCE_REGISTRY
        ),
    }


def run_validate(geojson_path: Path) -> dict:
    if not geojson_path.exists():
        raise StageError(f"Missing GeoJSON output: {geojson_path}")
    return validate_feature_collection(read_json(geojson_path))
