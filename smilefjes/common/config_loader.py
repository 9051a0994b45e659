"""Configuration loading, overlay merging and environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

from smilefjes.common.errors import ConfigError
from smilefjes.common.fs import read_yaml
from smilefjes.common.schema import validate_pipeline_config

CONFIG_FILENAME = "pipeline.yml"

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "MAX_FEATURES": ("limits", "max_features"),
    "BRREG_DELAY_MS": ("registry", "delay_ms"),
    "GEOCODE_DELAY_MS": ("geocoder", "delay_ms"),
}


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def apply_env_overrides(cfg: dict, environ: Mapping[str, str]) -> dict:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or not raw.strip():
            continue
        if cfg.get(section) is None:
            cfg[section] = {}
        try:
            cfg[section][key] = int(raw.strip())
        except ValueError as exc:
            raise ConfigError(f"{env_name} must be an integer, got {raw!r}") from exc
    return cfg


def load_pipeline_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict:
    overlay_path = (overlay_config_dir / CONFIG_FILENAME) if overlay_config_dir is not None else None
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config must be a mapping: {config_dir / CONFIG_FILENAME}")
    cfg = apply_env_overrides(cfg, os.environ if environ is None else environ)
    return validate_pipeline_config(cfg, allow_unknown=allow_unknown)
