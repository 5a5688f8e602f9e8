"""
WorkflowPolicy -- the tunables the approval workflow reads.

Architecture position:
    Kernel > Domain -- pure.  The kernel never reads configuration itself;
    ``fieldservice_config.bridges.build_workflow_policy`` translates loaded
    settings into this object, and callers inject it.
"""

from dataclasses import dataclass

from fieldservice_kernel.domain.schedule import DEFAULT_LEAD_DAYS

DEFAULT_TECHNICIAN = "unassigned"
DEFAULT_REJECTION_REASON = "Rejected by client"
DEFAULT_LOW_STOCK_THRESHOLD = 3


@dataclass(frozen=True)
class WorkflowPolicy:
    """Approval-time defaults.  The no-argument instance is the house default."""

    lead_days: int = DEFAULT_LEAD_DAYS
    unassigned_technician: str = DEFAULT_TECHNICIAN
    default_rejection_reason: str = DEFAULT_REJECTION_REASON
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD

    def __post_init__(self) -> None:
        if self.lead_days < 0:
            raise ValueError(f"lead_days must be >= 0, got {self.lead_days}")
        if self.low_stock_threshold < 0:
            raise ValueError(
                f"low_stock_threshold must be >= 0, got {self.low_stock_threshold}"
            )
        if not self.unassigned_technician.strip():
            raise ValueError("unassigned_technician must not be blank")
