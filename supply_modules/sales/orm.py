"""
Sales ORM Models (``supply_modules.sales.orm``).

Responsibility
--------------
SQLAlchemy persistence for retail sales and their commissions.

Architecture position
---------------------
**Modules layer** -- persistence.  MUST NOT be imported by ``supply_kernel``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.types import DocumentNumberType, MoneyType, RateType
from supply_kernel.domain.money import CommissionType
from supply_modules.sales.models import Commission, CommissionStatus, Sale


class SaleModel(TrackedBase):
    """
    ORM model for retail sales.

    Guarantees:
        - sale_number unique; units_sold > 0.
        - unit_price is the live per-unit price at the time of sale.
    """

    __tablename__ = "sales"

    __table_args__ = (
        UniqueConstraint("sale_number", name="uq_sale_number"),
        CheckConstraint("units_sold > 0", name="chk_sale_units_positive"),
        CheckConstraint("packets_opened >= 0", name="chk_sale_packets_opened_nonneg"),
        Index("idx_sale_retailer_material", "retailer_id", "material_id"),
    )

    sale_number: Mapped[str] = mapped_column(DocumentNumberType, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    units_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    packets_opened: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dto(self) -> Sale:
        return Sale(
            sale_id=self.id,
            sale_number=self.sale_number,
            material_id=self.material_id,
            retailer_id=self.retailer_id,
            units_sold=self.units_sold,
            unit_price=self.unit_price,
            total_amount=self.total_amount,
            packets_opened=self.packets_opened,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<SaleModel {self.sale_number} units={self.units_sold} total={self.total_amount}>"


class CommissionModel(TrackedBase):
    """
    ORM model for commissions; exactly one per sale.

    commission_type and commission_rate are copied from the material's
    policy at sale time.
    """

    __tablename__ = "commissions"

    __table_args__ = (
        UniqueConstraint("sale_id", name="uq_commission_sale"),
        CheckConstraint("amount >= 0", name="chk_commission_amount_nonneg"),
        Index("idx_commission_retailer_status", "retailer_id", "status"),
    )

    sale_id: Mapped[UUID] = mapped_column(ForeignKey("sales.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    commission_type: Mapped[str] = mapped_column(String(20), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    units_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CommissionStatus.PENDING.value,
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dto(self) -> Commission:
        return Commission(
            commission_id=self.id,
            sale_id=self.sale_id,
            retailer_id=self.retailer_id,
            commission_type=CommissionType(self.commission_type),
            commission_rate=self.commission_rate,
            units_sold=self.units_sold,
            amount=self.amount,
            status=CommissionStatus(self.status),
            paid_at=self.paid_at,
        )

    def __repr__(self) -> str:
        return f"<CommissionModel sale={self.sale_id} {self.amount} [{self.status}]>"
