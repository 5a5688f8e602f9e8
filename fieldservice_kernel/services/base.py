"""
Common base for the write-side services (StockLedger, EquipmentProvisioner).

Services work inside the caller's transaction: they ``flush()`` so ids and
constraint violations surface early, and leave commit and rollback to the
orchestrator.  An approval that fails halfway is only undone because no
service ever commits on its own.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fieldservice_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the caller's session.  Reporting reads live in selectors/."""

    def __init__(self, session: Session):
        self.session = session
