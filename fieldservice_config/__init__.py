"""
fieldservice_config -- single public entrypoint for kernel settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  Settings come from the packaged
    ``defaults.yaml``, an optional overlay file, and a small set of
    environment variables, in that order.

Architecture position:
    Configuration -- sits above ``fieldservice_kernel``.  The kernel MUST
    NEVER import from ``fieldservice_config``; ``bridges`` translates
    settings into kernel inputs (WorkflowPolicy, engine arguments).

Failure modes:
    - ``FileNotFoundError`` -- the overlay file does not exist.
    - ``ValueError`` -- unknown keys, wrong types or failed validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``FIELDSERVICE_CONFIG_TRACE`` log entry with the checksum of the merged
    settings and the files they came from.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from fieldservice_config.loader import (
    apply_env_overrides,
    compute_checksum,
    load_yaml_file,
    merge_settings,
    parse_settings,
)
from fieldservice_config.schema import KernelSettings
from fieldservice_config.validator import validate_settings

_logger = logging.getLogger("fieldservice_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "FIELDSERVICE_CONFIG"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Overlay YAML file.  Defaults to ``$FIELDSERVICE_CONFIG``
            when set, else no overlay.
        environ: Environment to read overrides from.  Defaults to
            ``os.environ``.

    Returns:
        Frozen ``KernelSettings``.

    Raises:
        FileNotFoundError: If the overlay file does not exist.
        ValueError: If the merged settings are malformed or invalid.
    """
    env = os.environ if environ is None else environ

    data = load_yaml_file(DEFAULTS_PATH)
    sources = [str(DEFAULTS_PATH)]

    overlay_path = config_path or env.get(CONFIG_PATH_ENV) or None
    if overlay_path:
        overlay_path = Path(overlay_path)
        data = merge_settings(data, load_yaml_file(overlay_path))
        sources.append(str(overlay_path))

    data = apply_env_overrides(data, env)
    checksum = compute_checksum(data)
    settings = parse_settings(data, checksum=checksum, sources=tuple(sources))

    validation = validate_settings(settings)
    if not validation.is_valid:
        raise ValueError(
            "Settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"warning": warning})

    _logger.info(
        "FIELDSERVICE_CONFIG_TRACE",
        extra={
            "trace_type": "FIELDSERVICE_CONFIG_TRACE",
            "checksum": checksum,
            "sources": list(sources),
            "lead_days": settings.scheduling.lead_days,
            "low_stock_threshold": settings.inventory.low_stock_threshold,
            "log_level": settings.logging.level,
        },
    )
    return settings


__all__ = ["get_active_config", "KernelSettings"]
