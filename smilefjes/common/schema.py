"""Minimal strict schema for the pipeline YAML config."""

from __future__ import annotations

from smilefjes.common.errors import ConfigError

SECTION_KEYS = {
    "source": ({"url", "delimiter"}, set()),
    "registry": (
        {"sub_entity_url", "main_entity_url", "delay_ms", "cache_filename"},
        {"cache_transient_failures"},
    ),
    "geocoder": ({"search_url", "delay_ms", "cache_filename"}, {"target_epsg"}),
    "cache": (set(), {"flush_every"}),
    "limits": ({"max_features"}, set()),
    "output": ({"geojson_path"}, set()),
}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_non_negative_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{ctx} must be a non-negative integer, got {value!r}")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    if not isinstance(cfg, dict):
        raise ConfigError("pipeline config must be a mapping")

    _assert_required_keys(cfg, set(SECTION_KEYS), "pipeline config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "pipeline config", allow_unknown)

    for section, (required, optional) in SECTION_KEYS.items():
        body = cfg[section]
        if body is None:
            body = cfg[section] = {}
        if not isinstance(body, dict):
            raise ConfigError(f"{section} must be a mapping")
        _assert_required_keys(body, required, section)
        _assert_no_unknown_keys(body, required | optional, section, allow_unknown)

    if len(str(cfg["source"]["delimiter"])) != 1:
        raise ConfigError("source.delimiter must be a single character")
    for url_key in ("sub_entity_url", "main_entity_url"):
        if "{org_number}" not in cfg["registry"][url_key]:
            raise ConfigError(f"registry.{url_key} must contain an {{org_number}} placeholder")

    _assert_non_negative_int(cfg["registry"]["delay_ms"], "registry.delay_ms")
    _assert_non_negative_int(cfg["geocoder"]["delay_ms"], "geocoder.delay_ms")
    _assert_non_negative_int(cfg["limits"]["max_features"], "limits.max_features")
    _assert_non_negative_int(cfg["cache"].get("flush_every", 0), "cache.flush_every")
    return cfg
