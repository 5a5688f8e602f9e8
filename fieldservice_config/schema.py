"""
Settings schema.

Typed, frozen views of the merged YAML settings.  The loader builds them;
nothing else constructs them outside tests.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class SchedulingSettings:
    lead_days: int = 2


@dataclass(frozen=True)
class InventorySettings:
    low_stock_threshold: int = 3


@dataclass(frozen=True)
class WorkflowSettings:
    unassigned_technician: str = "unassigned"
    default_rejection_reason: str = "Rejected by client"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class KernelSettings:
    """Everything the kernel can be configured with."""

    database: DatabaseSettings
    scheduling: SchedulingSettings
    inventory: InventorySettings
    workflow: WorkflowSettings
    logging: LoggingSettings
    checksum: str = ""
    sources: tuple[str, ...] = ()
