"""
Returns ORM Models (``supply_modules.returns.orm``).

Responsibility
--------------
SQLAlchemy persistence for retailer returns and their lines.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``supply_kernel``.
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
from supply_modules.returns.models import Return, ReturnItem, ReturnReason, ReturnStatus


class ReturnModel(TrackedBase):
    """
    ORM model for returns.

    Guarantees:
        - return_number unique.
        - resolved_* columns set exactly when status is a resolution.
    """

    __tablename__ = "returns"

    __table_args__ = (
        UniqueConstraint("return_number", name="uq_return_number"),
        Index("idx_return_retailer_status", "retailer_id", "status"),
        Index("idx_return_manufacturer", "manufacturer_id"),
    )

    return_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    grn_id: Mapped[UUID | None] = mapped_column(ForeignKey("grns.id"), nullable=True)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    reason_details: Mapped[str | None] = mapped_column(NotesType, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReturnStatus.RAISED.value,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(NotesType, nullable=True)

    items: Mapped[list["ReturnItemModel"]] = relationship(
        back_populates="return_",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReturnItemModel.line_number",
    )

    def to_dto(self) -> Return:
        return Return(
            return_id=self.id,
            return_number=self.return_number,
            retailer_id=self.retailer_id,
            manufacturer_id=self.manufacturer_id,
            reason=ReturnReason(self.reason),
            status=ReturnStatus(self.status),
            items=tuple(item.to_dto() for item in self.items),
            grn_id=self.grn_id,
            reason_details=self.reason_details,
            resolved_at=self.resolved_at,
            resolved_by=self.resolved_by,
            resolution_notes=self.resolution_notes,
        )

    def __repr__(self) -> str:
        return f"<ReturnModel {self.return_number} [{self.status}]>"


class ReturnItemModel(TrackedBase):
    """One returned material."""

    __tablename__ = "return_items"

    __table_args__ = (
        UniqueConstraint("return_id", "material_id", name="uq_return_item_material"),
        CheckConstraint(
            "packets >= 0 AND loose_units >= 0 AND packets + loose_units > 0",
            name="chk_return_item_positive",
        ),
    )

    return_id: Mapped[UUID] = mapped_column(ForeignKey("returns.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    packets: Mapped[int] = mapped_column(Integer, nullable=False)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False)

    return_: Mapped["ReturnModel"] = relationship(back_populates="items")

    def to_dto(self) -> ReturnItem:
        return ReturnItem(
            item_id=self.id,
            material_id=self.material_id,
            packets=self.packets,
            loose_units=self.loose_units,
        )

    def __repr__(self) -> str:
        return f"<ReturnItemModel material={self.material_id} {self.packets}/{self.loose_units}>"
