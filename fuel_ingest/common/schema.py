"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from urllib.parse import urlparse

from fuel_ingest.common.errors import ConfigError

ALIAS_FIELDS = {
    "site_id",
    "brand",
    "name",
    "address",
    "postcode",
    "last_updated",
    "location",
    "longitude",
    "latitude",
    "prices",
    "grades",
}
REQUIRED_GRADES = {"E5", "E10", "B7", "SDV"}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


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


def _assert_key_list(value: object, ctx: str) -> None:
    if not isinstance(value, list) or not value or not all(isinstance(v, str) and v for v in value):
        raise ConfigError(f"{ctx} must be a non-empty list of field names")


def _assert_positive_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_alias_overrides(cfg: dict, ctx: str, *, allow_unknown: bool = False) -> dict:
    """Check a partial alias table; every present entry must be well formed."""
    _assert_mapping(cfg, ctx)
    _assert_no_unknown_keys(cfg, ALIAS_FIELDS, ctx, allow_unknown)
    for key, value in cfg.items():
        if key == "grades":
            _assert_mapping(value, f"{ctx}.grades")
            _assert_no_unknown_keys(value, REQUIRED_GRADES, f"{ctx}.grades", allow_unknown)
            for grade, grade_keys in value.items():
                _assert_key_list(grade_keys, f"{ctx}.grades.{grade}")
        elif key in ALIAS_FIELDS:
            _assert_key_list(value, f"{ctx}.{key}")
    return cfg


def validate_field_aliases_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "field_aliases")
    _assert_required_keys(cfg, ALIAS_FIELDS, "field_aliases")
    _assert_mapping(cfg["grades"], "field_aliases.grades")
    _assert_required_keys(cfg["grades"], REQUIRED_GRADES, "field_aliases.grades")
    return validate_alias_overrides(cfg, "field_aliases", allow_unknown=allow_unknown)


def validate_retailers_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "retailers config")
    _assert_required_keys(cfg, {"retailers"}, "retailers config")
    _assert_no_unknown_keys(cfg, {"retailers"}, "retailers config", allow_unknown)

    retailers = cfg["retailers"]
    if not isinstance(retailers, list) or not retailers:
        raise ConfigError("retailers must be a non-empty list")

    names: list[str] = []
    for idx, entry in enumerate(retailers):
        ctx = f"retailers[{idx}]"
        _assert_mapping(entry, ctx)
        _assert_required_keys(entry, {"name", "url"}, ctx)
        _assert_no_unknown_keys(entry, {"name", "url", "aliases"}, ctx, allow_unknown)

        parsed = urlparse(str(entry["url"]))
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigError(f"{ctx}.url is not a well-formed http(s) URL: {entry['url']!r}")
        if "aliases" in entry:
            validate_alias_overrides(entry["aliases"], f"{ctx}.aliases", allow_unknown=allow_unknown)
        names.append(str(entry["name"]))

    dupes = {name for name in names if names.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate retailer names: {', '.join(sorted(dupes))}")

    return cfg


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "pipeline config")
    _assert_required_keys(cfg, {"http", "store"}, "pipeline config")
    _assert_no_unknown_keys(cfg, {"http", "store"}, "pipeline config", allow_unknown)

    http = _assert_mapping(cfg["http"], "http")
    http_keys = {"connect_timeout", "read_timeout", "max_attempts", "max_workers"}
    _assert_required_keys(http, http_keys, "http")
    _assert_no_unknown_keys(http, http_keys, "http", allow_unknown)
    for key in sorted(http_keys):
        _assert_positive_number(http[key], f"http.{key}")

    store = _assert_mapping(cfg["store"], "store")
    store_keys = {"stations_table", "averages_table", "batch_size", "url_env", "key_env"}
    _assert_required_keys(store, store_keys, "store")
    _assert_no_unknown_keys(store, store_keys, "store", allow_unknown)
    if not isinstance(store["batch_size"], int) or isinstance(store["batch_size"], bool):
        raise ConfigError("store.batch_size must be an integer")
    _assert_positive_number(store["batch_size"], "store.batch_size")

    return cfg
