"""Configuration loading helpers for nali-geo.

Settings come from a YAML file (``NALI_GEO_CONFIG`` or the system default)
with environment overrides layered on top, so CI/DEV runs can point the
service at a stub binary without touching files under /etc.
"""
from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from . import logging_utils as log

DEFAULT_CONFIG_PATH = Path("/etc/nali-geo/config.yaml")
OVERFLOW_POLICIES = ("truncate", "error")


@dataclass
class GeoConfig:
    binary: str = "nali"
    timeout: float = 5.0
    raw_capacity: int = 1024
    continent_capacity: int = 48
    country_capacity: int = 51
    city_capacity: int = 28
    overflow: str = "truncate"


def config_path() -> Path:
    override = os.environ.get("NALI_GEO_CONFIG")
    if override:
        return Path(override)
    return DEFAULT_CONFIG_PATH


def load_yaml_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        log.warning(f"ignoring unreadable config {path}: {exc}")
        return {}
    if not isinstance(data, dict):
        return {}
    section = data.get("nali_geo")
    if isinstance(section, dict):
        return section
    return data


def load_json_env(name: str) -> Dict[str, Any]:
    raw = os.environ.get(name)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        log.warning(f"ignoring invalid JSON in {name}")
        return {}
    return data if isinstance(data, dict) else {}


def _env_overrides() -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    binary = os.environ.get("NALI_GEO_BIN")
    if binary:
        data["binary"] = binary
    timeout = os.environ.get("NALI_GEO_TIMEOUT")
    if timeout:
        data["timeout"] = timeout
    data.update(load_json_env("NALI_GEO_JSON"))
    return data


def _coerce(name: str, value: Any, default: Any) -> Any:
    if value is None:
        return default
    try:
        if isinstance(default, (int, float)) and isinstance(value, bool):
            raise ValueError(value)
        if isinstance(default, int):
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            coerced: Any = int(value)
        elif isinstance(default, float):
            coerced = float(value)
            if not math.isfinite(coerced):
                raise ValueError(value)
        else:
            coerced = str(value).strip()
    except (TypeError, ValueError, OverflowError):
        log.warning(f"invalid value for {name}: {value!r}, using {default!r}")
        return default
    if isinstance(coerced, (int, float)) and coerced <= 0:
        log.warning(f"{name} must be positive, using {default!r}")
        return default
    if name == "overflow" and coerced not in OVERFLOW_POLICIES:
        log.warning(f"unknown overflow policy {coerced!r}, using {default!r}")
        return default
    if isinstance(coerced, str) and not coerced:
        return default
    return coerced


def build_config(values: Dict[str, Any]) -> GeoConfig:
    defaults = GeoConfig()
    kwargs = {}
    for field in fields(GeoConfig):
        default = getattr(defaults, field.name)
        kwargs[field.name] = _coerce(field.name, values.get(field.name), default)
    return GeoConfig(**kwargs)


def load_config(path: Optional[Path] = None) -> GeoConfig:
    values = load_yaml_file(path or config_path())
    values.update(_env_overrides())
    return build_config(values)
