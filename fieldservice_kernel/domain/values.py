"""
Values -- Enumerations shared by models, domain logic and services.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Models store these as String
    columns; the enums are ``str`` subclasses so stored values compare
    equal to members.
"""

from enum import Enum


class QuoteType(str, Enum):
    """Kind of work a quote proposes."""

    INSTALLATION = "installation"
    MAINTENANCE = "maintenance"
    REPAIR = "repair"


class QuoteState(str, Enum):
    """Quote lifecycle states.  Everything but PENDING is terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


class InventoryStatus(str, Enum):
    """Derived availability of an inventory item (projection of stock == 0)."""

    AVAILABLE = "available"
    EXHAUSTED = "exhausted"


class EquipmentState(str, Enum):
    """Lifecycle of a client-owned physical unit."""

    ACTIVE = "active"
    IN_MAINTENANCE = "in_maintenance"
    DECOMMISSIONED = "decommissioned"


class WorkOrderType(str, Enum):
    """Kind of scheduled task."""

    INSTALLATION = "installation"
    MAINTENANCE = "maintenance"
    REPAIR = "repair"


class WorkOrderStatus(str, Enum):
    """Work order progress.  Approval always creates PENDING orders."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceMode(str, Enum):
    """How an existing unit is picked for a service quote."""

    MAINTENANCE = "maintenance"  # oldest active unit
    REPAIR = "repair"  # newest active or in-maintenance unit
