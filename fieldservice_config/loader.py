"""
Settings loader (``fieldservice_config.loader``).

Responsibility
--------------
Reads YAML files, merges an overlay onto the defaults, applies environment
overrides and parses the result into ``fieldservice_config.schema``
dataclasses.  Runtime callers use ``fieldservice_config.get_active_config()``
instead of calling this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key, or a value of the wrong type  -> ``ValueError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from fieldservice_config.schema import (
    DatabaseSettings,
    InventorySettings,
    KernelSettings,
    LoggingSettings,
    SchedulingSettings,
    WorkflowSettings,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "scheduling": SchedulingSettings,
    "inventory": InventorySettings,
    "workflow": WorkflowSettings,
    "logging": LoggingSettings,
}

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "FIELDSERVICE_DATABASE_URL": ("database", "url"),
    "FIELDSERVICE_LOG_LEVEL": ("logging", "level"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_settings(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """
    Overlay ``overlay`` onto ``base`` section by section.

    Only sections and keys already present in ``base`` may be overridden.
    """
    merged = copy.deepcopy(dict(base))
    for section, values in overlay.items():
        if section not in merged:
            raise ValueError(f"Unknown settings section: {section!r}")
        if not isinstance(values, Mapping):
            raise ValueError(f"Settings section {section!r} must be a mapping")
        for key, value in values.items():
            if key not in merged[section]:
                raise ValueError(f"Unknown setting: {section}.{key}")
            merged[section][key] = value
    return merged


def apply_env_overrides(data: Mapping[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Apply ``ENV_OVERRIDES`` found in ``environ``; empty values are ignored."""
    result = copy.deepcopy(dict(data))
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            result.setdefault(section, {})[key] = value
    return result


def _coerce(section: str, key: str, value: Any, default: Any) -> Any:
    """Match ``value`` to the type of the field default (YAML and env are loose)."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    else:
        return value
    raise ValueError(
        f"Setting {section}.{key} must be {type(default).__name__}, got {value!r}"
    )


def parse_settings(
    data: Mapping[str, Any],
    checksum: str = "",
    sources: tuple[str, ...] = (),
) -> KernelSettings:
    """Parse a merged settings dict into ``KernelSettings``."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown settings section(s): {sorted(unknown)}")

    sections: dict[str, Any] = {}
    for name, cls in _SECTIONS.items():
        raw = data.get(name) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Settings section {name!r} must be a mapping")
        fields = cls.__dataclass_fields__
        for key in raw:
            if key not in fields:
                raise ValueError(f"Unknown setting: {name}.{key}")
        if name == "database" and "url" not in raw:
            raise ValueError("Setting database.url is required")
        kwargs = {}
        for key, value in raw.items():
            default = fields[key].default
            kwargs[key] = value if key == "url" else _coerce(name, key, value, default)
        sections[name] = cls(**kwargs)

    return KernelSettings(**sections, checksum=checksum, sources=sources)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
