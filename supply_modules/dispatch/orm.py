"""
Dispatch ORM Models (``supply_modules.dispatch.orm``).

Responsibility
--------------
SQLAlchemy persistence for dispatch orders, goods received notes, and
their lines.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``supply_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``supply_kernel``.

Invariants enforced
-------------------
* One dispatch per SRN (uq_dispatch_srn) and one GRN per dispatch
  (uq_grn_dispatch).  The services check first; the constraints are the
  backstop under concurrency.
"""

from datetime import datetime
from decimal import Decimal
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

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.types import DocumentNumberType, MoneyType, NotesType, RateType
from supply_modules.dispatch.models import (
    GRN,
    DispatchItem,
    DispatchOrder,
    DispatchStatus,
    GRNItem,
    GRNStatus,
)


class DispatchOrderModel(TrackedBase):
    """
    ORM model for dispatch orders.

    Guarantees:
        - dispatch_number is unique; srn_id is unique (1:1 with SRN).
        - subtotal equals the sum of the frozen line totals.
    """

    __tablename__ = "dispatch_orders"

    __table_args__ = (
        UniqueConstraint("dispatch_number", name="uq_dispatch_number"),
        UniqueConstraint("srn_id", name="uq_dispatch_srn"),
        Index("idx_dispatch_manufacturer_status", "manufacturer_id", "status"),
    )

    dispatch_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    srn_id: Mapped[UUID] = mapped_column(ForeignKey("srns.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DispatchStatus.PENDING.value,
    )
    subtotal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["DispatchItemModel"]] = relationship(
        back_populates="dispatch",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DispatchItemModel.line_number",
    )

    def to_dto(self) -> DispatchOrder:
        return DispatchOrder(
            dispatch_id=self.id,
            dispatch_number=self.dispatch_number,
            srn_id=self.srn_id,
            manufacturer_id=self.manufacturer_id,
            retailer_id=self.retailer_id,
            status=DispatchStatus(self.status),
            subtotal=self.subtotal,
            items=tuple(item.to_dto() for item in self.items),
            executed_at=self.executed_at,
            delivered_at=self.delivered_at,
        )

    def __repr__(self) -> str:
        return f"<DispatchOrderModel {self.dispatch_number} [{self.status}] {self.subtotal}>"


class DispatchItemModel(TrackedBase):
    """One dispatched material with its price snapshot."""

    __tablename__ = "dispatch_items"

    __table_args__ = (
        UniqueConstraint("dispatch_id", "material_id", name="uq_dispatch_item_material"),
        CheckConstraint(
            "packets >= 0 AND loose_units >= 0",
            name="chk_dispatch_item_nonneg",
        ),
    )

    dispatch_id: Mapped[UUID] = mapped_column(ForeignKey("dispatch_orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    packets: Mapped[int] = mapped_column(Integer, nullable=False)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    mrp_per_packet: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    hsn_code: Mapped[str] = mapped_column(String(20), nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)

    dispatch: Mapped["DispatchOrderModel"] = relationship(back_populates="items")

    def to_dto(self) -> DispatchItem:
        return DispatchItem(
            item_id=self.id,
            material_id=self.material_id,
            packets=self.packets,
            loose_units=self.loose_units,
            unit_price=self.unit_price,
            mrp_per_packet=self.mrp_per_packet,
            line_total=self.line_total,
            hsn_code=self.hsn_code,
            gst_rate=self.gst_rate,
        )

    def __repr__(self) -> str:
        return (
            f"<DispatchItemModel material={self.material_id} "
            f"{self.packets}/{self.loose_units} total={self.line_total}>"
        )


class GRNModel(TrackedBase):
    """
    ORM model for goods received notes.

    Created PENDING alongside its dispatch; the retailer confirms it with
    the quantities actually received.
    """

    __tablename__ = "grns"

    __table_args__ = (
        UniqueConstraint("grn_number", name="uq_grn_number"),
        UniqueConstraint("dispatch_id", name="uq_grn_dispatch"),
        Index("idx_grn_retailer_status", "retailer_id", "status"),
    )

    grn_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    dispatch_id: Mapped[UUID] = mapped_column(ForeignKey("dispatch_orders.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=GRNStatus.PENDING.value)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(NotesType, nullable=True)

    items: Mapped[list["GRNItemModel"]] = relationship(
        back_populates="grn",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GRNItemModel.line_number",
    )

    def to_dto(self) -> GRN:
        return GRN(
            grn_id=self.id,
            grn_number=self.grn_number,
            dispatch_id=self.dispatch_id,
            retailer_id=self.retailer_id,
            status=GRNStatus(self.status),
            items=tuple(item.to_dto() for item in self.items),
            confirmed_at=self.confirmed_at,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<GRNModel {self.grn_number} [{self.status}]>"


class GRNItemModel(TrackedBase):
    """Expected versus received quantities for one material."""

    __tablename__ = "grn_items"

    __table_args__ = (
        UniqueConstraint("grn_id", "material_id", name="uq_grn_item_material"),
        CheckConstraint(
            "expected_packets >= 0 AND expected_loose_units >= 0",
            name="chk_grn_item_expected_nonneg",
        ),
        CheckConstraint(
            "(received_packets IS NULL OR received_packets >= 0)"
            " AND (received_loose_units IS NULL OR received_loose_units >= 0)",
            name="chk_grn_item_received_nonneg",
        ),
    )

    grn_id: Mapped[UUID] = mapped_column(ForeignKey("grns.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    expected_packets: Mapped[int] = mapped_column(Integer, nullable=False)
    expected_loose_units: Mapped[int] = mapped_column(Integer, nullable=False)
    received_packets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_loose_units: Mapped[int | None] = mapped_column(Integer, nullable=True)

    grn: Mapped["GRNModel"] = relationship(back_populates="items")

    @property
    def has_discrepancy(self) -> bool:
        return self.to_dto().has_discrepancy

    def to_dto(self) -> GRNItem:
        return GRNItem(
            item_id=self.id,
            material_id=self.material_id,
            expected_packets=self.expected_packets,
            expected_loose_units=self.expected_loose_units,
            received_packets=self.received_packets,
            received_loose_units=self.received_loose_units,
        )

    def __repr__(self) -> str:
        return (
            f"<GRNItemModel material={self.material_id} "
            f"exp={self.expected_packets}/{self.expected_loose_units} "
            f"rcv={self.received_packets}/{self.received_loose_units}>"
        )
