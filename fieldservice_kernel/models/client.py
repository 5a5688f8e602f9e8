"""
Module: fieldservice_kernel.models.client
Responsibility: ORM persistence for clients -- the people and companies the
    business installs, maintains and repairs equipment for.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - tax_id is unique when present (uq_client_tax_id).
    - Only contact fields (email, phone, address) are expected to change once
      a quote references the client; the kernel itself never edits clients.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fieldservice_kernel.db.base import TrackedBase


class Client(TrackedBase):
    """A client that owns equipment and receives work orders."""

    __tablename__ = "clients"

    __table_args__ = (
        UniqueConstraint("tax_id", name="uq_client_tax_id"),
        Index("idx_client_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # National tax identifier (RUT, VAT number, ...)
    tax_id: Mapped[str | None] = mapped_column(String(20), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Default site address, used when a quote gives no install address
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Client {self.name}>"
