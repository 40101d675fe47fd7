"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from storemap.common.errors import ConfigError

SECTION_KEYS: dict[str, set[str]] = {
    "bitable": {"api_base", "page_size", "max_pages", "timeout_seconds", "rate_per_sec"},
    "fields": {
        "name_candidates",
        "location_field",
        "product_name",
        "brand",
        "discount_price",
        "distributor",
        "region",
        "district",
        "record_date",
        "latitude_pattern",
        "longitude_pattern",
    },
    "coordinates": {"lat_range", "lng_range", "reject_ambiguous"},
    "transform": {"unknown_label", "preview_fields", "preview_chars", "workers"},
    "completion": {"api_url", "temperature", "timeout_seconds", "top_products", "discount_samples"},
    "filters": {"brand_delimiters", "regions", "brands"},
    "map": {"center", "zoom", "default_pin_color", "brand_pin_colors"},
    "http": {"max_attempts", "max_wait"},
}

REQUIRED_KEYS: dict[str, set[str]] = {
    "bitable": {"api_base", "page_size", "max_pages"},
    "fields": {"name_candidates", "location_field", "latitude_pattern", "longitude_pattern"},
    "coordinates": {"lat_range", "lng_range"},
    "transform": {"unknown_label"},
    "completion": {"api_url"},
    "filters": {"brand_delimiters"},
    "map": {"center", "zoom"},
    "http": {"max_attempts"},
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


def _assert_pair(value: object, ctx: str, *, ordered: bool = True) -> None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigError(f"{ctx} must be a two-element list")
    first, second = value
    if not isinstance(first, (int, float)) or not isinstance(second, (int, float)):
        raise ConfigError(f"{ctx} must contain numbers")
    if ordered and first > second:
        raise ConfigError(f"{ctx} must be a [min, max] pair with min <= max")


def validate_app_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    if not isinstance(cfg, dict):
        raise ConfigError("storemap config must be a mapping")

    _assert_required_keys(cfg, set(REQUIRED_KEYS), "storemap config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "storemap config", allow_unknown)

    for section, known in SECTION_KEYS.items():
        body = cfg[section]
        if not isinstance(body, dict):
            raise ConfigError(f"{section} must be a mapping")
        _assert_required_keys(body, REQUIRED_KEYS[section], section)
        _assert_no_unknown_keys(body, known, section, allow_unknown)

    if not isinstance(cfg["fields"]["name_candidates"], list) or not cfg["fields"]["name_candidates"]:
        raise ConfigError("fields.name_candidates must be a non-empty list")
    if int(cfg["bitable"]["page_size"]) <= 0 or int(cfg["bitable"]["max_pages"]) <= 0:
        raise ConfigError("bitable.page_size and bitable.max_pages must be positive")
    if int(cfg["http"]["max_attempts"]) < 1:
        raise ConfigError("http.max_attempts must be at least 1")

    _assert_pair(cfg["coordinates"]["lat_range"], "coordinates.lat_range")
    _assert_pair(cfg["coordinates"]["lng_range"], "coordinates.lng_range")
    _assert_pair(cfg["map"]["center"], "map.center", ordered=False)

    return cfg
