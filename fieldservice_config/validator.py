"""
Settings validator (``fieldservice_config.validator``).

Semantic checks that the type-level parse cannot express: positive pool
sizes, a known log level, non-blank workflow strings.  ``get_active_config``
refuses settings with errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fieldservice_config.schema import KernelSettings


@dataclass
class ConfigValidationResult:
    """
    Result of settings validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_settings(settings: KernelSettings) -> ConfigValidationResult:
    """Validate merged settings."""
    result = ConfigValidationResult()

    db = settings.database
    if not db.url.strip():
        result.add_error("database.url must not be empty")
    if db.pool_size < 1:
        result.add_error(f"database.pool_size must be >= 1, got {db.pool_size}")
    if db.max_overflow < 0:
        result.add_error(f"database.max_overflow must be >= 0, got {db.max_overflow}")
    if db.pool_timeout < 1:
        result.add_error(f"database.pool_timeout must be >= 1, got {db.pool_timeout}")
    if db.url.startswith("sqlite"):
        result.add_warning("database.url points at SQLite; row locks are not enforced")

    if settings.scheduling.lead_days < 0:
        result.add_error(
            f"scheduling.lead_days must be >= 0, got {settings.scheduling.lead_days}"
        )
    if settings.inventory.low_stock_threshold < 0:
        result.add_error(
            "inventory.low_stock_threshold must be >= 0, "
            f"got {settings.inventory.low_stock_threshold}"
        )

    if not settings.workflow.unassigned_technician.strip():
        result.add_error("workflow.unassigned_technician must not be blank")
    if not settings.workflow.default_rejection_reason.strip():
        result.add_error("workflow.default_rejection_reason must not be blank")

    if not isinstance(logging.getLevelName(settings.logging.level.upper()), int):
        result.add_error(f"logging.level is not a known level: {settings.logging.level!r}")

    return result
