"""Configuration loading and validation."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from datafordeler.common.errors import ConfigError
from datafordeler.common.fs import read_yaml
from datafordeler.common.schema import validate_converter_config

CONFIG_FILENAME = "converter.yml"


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
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> dict:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    return validate_converter_config(cfg, allow_unknown=allow_unknown)


def apply_overrides(
    cfg: dict,
    *,
    dar: str | None = None,
    mat: str | None = None,
    out_dir: str | None = None,
) -> dict:
    """Return a copy of ``cfg`` with command-line source/output overrides applied.

    An overridden source keeps its configured prefix, which only matters when the
    new location is a directory.
    """
    updated = copy.deepcopy(cfg)
    for name, location in (("dar", dar), ("mat", mat)):
        if location:
            updated["sources"][name]["location"] = location
    if out_dir:
        updated["output"]["directory"] = out_dir
    return updated
