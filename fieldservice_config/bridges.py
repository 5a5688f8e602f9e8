"""
Config -> Kernel bridges.

Functions that convert ``KernelSettings`` into kernel inputs.  They live
here (the producer) because the kernel must NEVER import
fieldservice_config.

Usage:
    from fieldservice_config import get_active_config
    from fieldservice_config.bridges import build_workflow_policy, init_engine_from_settings

    settings = get_active_config()
    init_engine_from_settings(settings)
    policy = build_workflow_policy(settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from fieldservice_config.schema import KernelSettings
from fieldservice_kernel.db.engine import init_engine_from_url
from fieldservice_kernel.domain.policy import WorkflowPolicy
from fieldservice_kernel.logging_config import configure_logging


def build_workflow_policy(settings: KernelSettings) -> WorkflowPolicy:
    """Approval-time defaults from the scheduling, inventory and workflow sections."""
    return WorkflowPolicy(
        lead_days=settings.scheduling.lead_days,
        unassigned_technician=settings.workflow.unassigned_technician,
        default_rejection_reason=settings.workflow.default_rejection_reason,
        low_stock_threshold=settings.inventory.low_stock_threshold,
    )


def init_engine_from_settings(settings: KernelSettings) -> Engine:
    """Configure logging at the configured level, then create the engine."""
    configure_logging(level=settings.logging.level.upper())
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
