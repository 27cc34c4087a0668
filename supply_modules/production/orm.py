"""
Production ORM Models (``supply_modules.production.orm``).

Responsibility
--------------
SQLAlchemy persistence for production batches.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``supply_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``supply_kernel``.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.types import DocumentNumberType, NotesType
from supply_modules.production.models import ProductionBatch


class ProductionBatchModel(TrackedBase):
    """
    ORM model for production batches.

    Guarantees:
        - batch_number is unique (uq_production_batch_number).
        - manufacturer_batch_ref is unique per manufacturer when given.
        - hsn_code_snapshot is the material's HSN at recording time.
    """

    __tablename__ = "production_batches"

    __table_args__ = (
        UniqueConstraint("batch_number", name="uq_production_batch_number"),
        UniqueConstraint(
            "manufacturer_id", "manufacturer_batch_ref",
            name="uq_production_manufacturer_ref",
        ),
        Index("idx_production_material", "material_id"),
    )

    batch_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    manufacturer_batch_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    packets: Mapped[int] = mapped_column(Integer, nullable=False)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False)
    manufacture_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hsn_code_snapshot: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(NotesType, nullable=True)

    def to_dto(self) -> ProductionBatch:
        return ProductionBatch(
            batch_id=self.id,
            batch_number=self.batch_number,
            material_id=self.material_id,
            manufacturer_id=self.manufacturer_id,
            packets=self.packets,
            loose_units=self.loose_units,
            manufacture_date=self.manufacture_date,
            hsn_code_snapshot=self.hsn_code_snapshot,
            expiry_date=self.expiry_date,
            manufacturer_batch_ref=self.manufacturer_batch_ref,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<ProductionBatchModel {self.batch_number} p={self.packets} u={self.loose_units}>"
