"""Minimal strict schema for YAML config validation."""

from __future__ import annotations

import codecs

from datafordeler.common.constants import LOOKUP_STRATEGIES, SOURCES
from datafordeler.common.errors import ConfigError

OUTPUT_FILENAME_KEYS = {"road_name", "post_code", "address_access", "address_specific"}


def _assert_mapping(obj, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    _assert_mapping(obj, ctx)
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


def _assert_positive_number(value, ctx: str, *, integer: bool = False) -> None:
    kinds = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds) or value <= 0:
        kind = "integer" if integer else "number"
        raise ConfigError(f"{ctx} must be a positive {kind}")


def validate_converter_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {
        "sources",
        "lookup_strategy",
        "output",
        "progress",
        "concurrency",
        "http",
    }
    _assert_required_keys(cfg, top_required, "converter config")
    _assert_no_unknown_keys(cfg, top_required, "converter config", allow_unknown)

    _assert_required_keys(cfg["sources"], set(SOURCES), "sources")
    for name in SOURCES:
        source = cfg["sources"][name]
        _assert_required_keys(source, {"location"}, f"sources.{name}")
        _assert_no_unknown_keys(source, {"location", "prefix"}, f"sources.{name}", allow_unknown)
        if not isinstance(source["location"], str) or not source["location"].strip():
            raise ConfigError(f"sources.{name}.location must be a non-empty string")

    if cfg["lookup_strategy"] not in LOOKUP_STRATEGIES:
        allowed = ", ".join(LOOKUP_STRATEGIES)
        raise ConfigError(f"lookup_strategy must be one of: {allowed}")

    _assert_required_keys(cfg["output"], {"directory", "encoding", "flush_every", "filenames"}, "output")
    _assert_positive_number(cfg["output"]["flush_every"], "output.flush_every", integer=True)
    try:
        codecs.lookup(cfg["output"]["encoding"])
    except (LookupError, TypeError) as exc:
        raise ConfigError(f"output.encoding is not a known codec: {cfg['output']['encoding']!r}") from exc
    _assert_required_keys(cfg["output"]["filenames"], OUTPUT_FILENAME_KEYS, "output.filenames")
    filenames = list(cfg["output"]["filenames"].values())
    dupes = {name for name in filenames if filenames.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate output filenames: {', '.join(sorted(dupes))}")

    _assert_required_keys(cfg["progress"], {"every"}, "progress")
    _assert_positive_number(cfg["progress"]["every"], "progress.every", integer=True)

    _assert_required_keys(cfg["concurrency"], {"max_workers"}, "concurrency")
    _assert_positive_number(cfg["concurrency"]["max_workers"], "concurrency.max_workers", integer=True)

    _assert_required_keys(cfg["http"], {"timeout", "retry"}, "http")
    _assert_required_keys(cfg["http"]["timeout"], {"connect", "read"}, "http.timeout")
    _assert_required_keys(cfg["http"]["retry"], {"max_attempts", "multiplier", "max_wait"}, "http.retry")
    _assert_positive_number(cfg["http"]["retry"]["max_attempts"], "http.retry.max_attempts", integer=True)

    return cfg
