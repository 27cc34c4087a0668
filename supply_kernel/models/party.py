"""
Module: supply_kernel.models.party
Responsibility: ORM persistence for the actors of the supply chain (admins,
    manufacturers, retailers) and the retailer-to-manufacturer assignments
    that decide which manufacturer may supply which retailer.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value enums only.

Invariants enforced:
    - party_code is globally unique (uq_party_code).
    - A retailer/manufacturer pair is assigned at most once
      (uq_retailer_manufacturer); re-assignment reactivates the row.

Failure modes:
    - IntegrityError on duplicate party_code or duplicate assignment pair.

Audit relevance:
    Party ids appear as owner / actor on every document, ledger row, and
    notification.  Parties are deactivated, never deleted.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase
from supply_kernel.domain.access import Role


class Party(TrackedBase):
    """
    A user of the system acting in exactly one role.

    Guarantees:
        - role is one of Role's values and never changes.
        - is_active=False parties receive no notifications and cannot be
          nominated as a supplying manufacturer.
    """

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("party_code", name="uq_party_code"),
        Index("idx_party_role_active", "role", "is_active"),
    )

    party_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def __repr__(self) -> str:
        return f"<Party {self.party_code} role={self.role} active={self.is_active}>"


class RetailerAssignment(TrackedBase):
    """Which manufacturers may supply a retailer."""

    __tablename__ = "retailer_assignments"

    __table_args__ = (
        UniqueConstraint("retailer_id", "manufacturer_id", name="uq_retailer_manufacturer"),
        Index("idx_assignment_manufacturer", "manufacturer_id"),
    )

    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return (
            f"<RetailerAssignment retailer={self.retailer_id} "
            f"manufacturer={self.manufacturer_id} active={self.is_active}>"
        )
