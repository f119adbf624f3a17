"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fuel_ingest.common.errors import ConfigError
from fuel_ingest.common.fs import read_yaml
from fuel_ingest.common.http import RetryConfig, TimeoutConfig
from fuel_ingest.common.models import FieldAliases, RetailerSource
from fuel_ingest.common.schema import (
    validate_field_aliases_config,
    validate_pipeline_config,
    validate_retailers_config,
)

CONFIG_FILES = ("retailers.yml", "field_aliases.yml", "pipeline.yml")


@dataclass(frozen=True)
class ConfigBundle:
    retailers: tuple[RetailerSource, ...]
    field_aliases: FieldAliases
    pipeline: dict

    @property
    def timeout(self) -> TimeoutConfig:
        http = self.pipeline["http"]
        return TimeoutConfig(connect=float(http["connect_timeout"]), read=float(http["read_timeout"]))

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(max_attempts=int(self.pipeline["http"]["max_attempts"]))

    @property
    def max_workers(self) -> int:
        return int(self.pipeline["http"]["max_workers"])

    @property
    def store(self) -> dict:
        return self.pipeline["store"]


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


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> Any:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def _prepend_keys(specific: list[str], defaults: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys([*specific, *defaults]))


def merge_aliases(defaults: FieldAliases, overrides: dict | None) -> FieldAliases:
    """Layer a retailer's own field names in front of the shared alias table."""
    if not overrides:
        return defaults

    merged: dict[str, Any] = {}
    for key in ("site_id", "brand", "name", "address", "postcode", "last_updated", "location", "longitude", "latitude", "prices"):
        merged[key] = _prepend_keys(overrides.get(key, []), getattr(defaults, key))

    grade_overrides = overrides.get("grades", {})
    merged["grades"] = {
        grade: _prepend_keys(grade_overrides.get(grade, []), keys) for grade, keys in defaults.grades.items()
    }
    return FieldAliases.from_dict(merged)


def build_registry(retailers_cfg: dict, default_aliases: FieldAliases) -> tuple[RetailerSource, ...]:
    return tuple(
        RetailerSource(
            name=str(entry["name"]),
            url=str(entry["url"]),
            aliases=merge_aliases(default_aliases, entry.get("aliases")),
        )
        for entry in retailers_cfg["retailers"]
    )


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    loaded = {}
    for filename in CONFIG_FILES:
        overlay_path = overlay_config_dir / filename if overlay_config_dir is not None else None
        loaded[filename] = _load_yaml_with_overlay(config_dir / filename, overlay_path)

    aliases_cfg = validate_field_aliases_config(loaded["field_aliases.yml"], allow_unknown=allow_unknown)
    retailers_cfg = validate_retailers_config(loaded["retailers.yml"], allow_unknown=allow_unknown)
    pipeline_cfg = validate_pipeline_config(loaded["pipeline.yml"], allow_unknown=allow_unknown)

    default_aliases = FieldAliases.from_dict(aliases_cfg)
    return ConfigBundle(
        retailers=build_registry(retailers_cfg, default_aliases),
        field_aliases=default_aliases,
        pipeline=pipeline_cfg,
    )
