"""
Invoice ORM Models (``supply_modules.invoice.orm``).

Responsibility
--------------
SQLAlchemy persistence for invoices and their lines.

Invariants enforced
-------------------
* One invoice per GRN (uq_invoice_grn).
* Rows are append-only: ``register_module_immutability`` attaches ORM
  listeners that reject any UPDATE or DELETE.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.types import DocumentNumberType, MoneyType, RateType
from supply_modules.invoice.models import Invoice, InvoiceItem


class InvoiceModel(TrackedBase):
    """
    ORM model for invoices.

    Guarantees:
        - invoice_number unique; grn_id unique.
        - total = subtotal + cgst + sgst + igst.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        UniqueConstraint("grn_id", name="uq_invoice_grn"),
        Index("idx_invoice_retailer", "retailer_id"),
    )

    invoice_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    grn_id: Mapped[UUID] = mapped_column(ForeignKey("grns.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    is_interstate: Mapped[bool] = mapped_column(Boolean, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    cgst: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    sgst: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    igst: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    items: Mapped[list["InvoiceItemModel"]] = relationship(
        back_populates="invoice",
        lazy="selectin",
        order_by="InvoiceItemModel.line_number",
    )

    def to_dto(self) -> Invoice:
        return Invoice(
            invoice_id=self.id,
            invoice_number=self.invoice_number,
            grn_id=self.grn_id,
            retailer_id=self.retailer_id,
            manufacturer_id=self.manufacturer_id,
            is_interstate=self.is_interstate,
            subtotal=self.subtotal,
            gst_rate=self.gst_rate,
            cgst=self.cgst,
            sgst=self.sgst,
            igst=self.igst,
            total=self.total,
            items=tuple(item.to_dto() for item in self.items),
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} total={self.total}>"


class InvoiceItemModel(TrackedBase):
    """One invoiced material, snapshotting catalog data at generation time."""

    __tablename__ = "invoice_items"

    __table_args__ = (
        UniqueConstraint("invoice_id", "material_id", name="uq_invoice_item_material"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    material_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hsn_code: Mapped[str] = mapped_column(String(20), nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    packets: Mapped[int] = mapped_column(Integer, nullable=False)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False)
    units_per_packet: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="items")

    def to_dto(self) -> InvoiceItem:
        return InvoiceItem(
            item_id=self.id,
            material_id=self.material_id,
            material_name=self.material_name,
            hsn_code=self.hsn_code,
            gst_rate=self.gst_rate,
            packets=self.packets,
            loose_units=self.loose_units,
            units_per_packet=self.units_per_packet,
            unit_price=self.unit_price,
            line_total=self.line_total,
        )

    def __repr__(self) -> str:
        return f"<InvoiceItemModel {self.material_name} total={self.line_total}>"
