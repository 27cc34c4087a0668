"""
SRN ORM Models (``supply_modules.srn.orm``).

Responsibility
--------------
SQLAlchemy persistence for stock requisition notes and their lines.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``supply_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``supply_kernel``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase, UUIDString
from supply_kernel.db.types import DocumentNumberType, NotesType
from supply_modules.srn.models import SRN, SRNItem, SRNStatus


class SRNModel(TrackedBase):
    """
    ORM model for stock requisition notes.

    Guarantees:
        - srn_number is unique (uq_srn_number).
        - status stored as SRNStatus value.
        - manufacturer_id is NULL until approval binds a supplier.
    """

    __tablename__ = "srns"

    __table_args__ = (
        UniqueConstraint("srn_number", name="uq_srn_number"),
        Index("idx_srn_retailer_status", "retailer_id", "status"),
        Index("idx_srn_status", "status"),
    )

    srn_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    manufacturer_id: Mapped[UUID | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SRNStatus.DRAFT.value)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    adjudicated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    adjudicated_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_note: Mapped[str | None] = mapped_column(NotesType, nullable=True)
    notes: Mapped[str | None] = mapped_column(NotesType, nullable=True)

    items: Mapped[list["SRNItemModel"]] = relationship(
        back_populates="srn",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SRNItemModel.line_number",
    )

    def to_dto(self) -> SRN:
        return SRN(
            srn_id=self.id,
            srn_number=self.srn_number,
            retailer_id=self.retailer_id,
            status=SRNStatus(self.status),
            items=tuple(item.to_dto() for item in self.items),
            manufacturer_id=self.manufacturer_id,
            submitted_at=self.submitted_at,
            adjudicated_at=self.adjudicated_at,
            adjudicated_by=self.adjudicated_by,
            rejection_note=self.rejection_note,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<SRNModel {self.srn_number} [{self.status}]>"


class SRNItemModel(TrackedBase):
    """
    One requested material on an SRN.

    Guarantees:
        - A material appears at most once per SRN (uq_srn_item_material).
        - approved quantities are 0 until approval and never exceed requested.
    """

    __tablename__ = "srn_items"

    __table_args__ = (
        UniqueConstraint("srn_id", "material_id", name="uq_srn_item_material"),
        CheckConstraint(
            "requested_packets >= 0 AND requested_loose_units >= 0",
            name="chk_srn_item_requested_nonneg",
        ),
        CheckConstraint(
            "approved_packets >= 0 AND approved_loose_units >= 0",
            name="chk_srn_item_approved_nonneg",
        ),
    )

    srn_id: Mapped[UUID] = mapped_column(ForeignKey("srns.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    requested_packets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requested_loose_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved_packets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved_loose_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    srn: Mapped["SRNModel"] = relationship(back_populates="items")

    def to_dto(self) -> SRNItem:
        return SRNItem(
            item_id=self.id,
            material_id=self.material_id,
            requested_packets=self.requested_packets,
            requested_loose_units=self.requested_loose_units,
            approved_packets=self.approved_packets,
            approved_loose_units=self.approved_loose_units,
        )

    def __repr__(self) -> str:
        return (
            f"<SRNItemModel material={self.material_id} "
            f"req={self.requested_packets}/{self.requested_loose_units} "
            f"appr={self.approved_packets}/{self.approved_loose_units}>"
        )
