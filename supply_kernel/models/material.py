"""
Module: supply_kernel.models.material
Responsibility: ORM persistence for the material catalog -- the packaged
    goods whose packets and loose units flow through both ledgers.
Architecture position: Kernel > Models.  May import from db/ and domain value
    types only.

Invariants enforced:
    - sq_code is globally unique (uq_material_sq_code).
    - units_per_packet > 0 and never changes (ORM listener in
      db/immutability.py).
    - hsn_code and gst_rate are frozen once has_production is True (ORM
      listener in db/immutability.py; MaterialService checks first).
    - 0 <= gst_rate <= 100, mrp_per_packet > 0 (check constraints).

Failure modes:
    - IntegrityError on duplicate sq_code or check-constraint breach.
    - ImmutabilityViolationError on forbidden updates.

Audit relevance:
    Dispatch lines and invoices snapshot price and tax fields from this row,
    so later catalog edits never rewrite historical documents.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.types import MoneyType, RateType
from supply_kernel.domain.dtos import MaterialSnapshot
from supply_kernel.domain.money import CommissionPolicy, CommissionType


class Material(TrackedBase):
    """
    A packaged good.

    Guarantees:
        - unit price is always derived (mrp_per_packet / units_per_packet),
          never stored here.
        - Deactivated materials stay readable for historical documents.
    """

    __tablename__ = "materials"

    __table_args__ = (
        UniqueConstraint("sq_code", name="uq_material_sq_code"),
        CheckConstraint("units_per_packet > 0", name="chk_material_upp_positive"),
        CheckConstraint("mrp_per_packet > 0", name="chk_material_mrp_positive"),
        CheckConstraint("gst_rate >= 0 AND gst_rate <= 100", name="chk_material_gst_range"),
        CheckConstraint("commission_value >= 0", name="chk_material_commission_nonneg"),
        Index("idx_material_active", "is_active"),
    )

    sq_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    units_per_packet: Mapped[int] = mapped_column(Integer, nullable=False)
    mrp_per_packet: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    hsn_code: Mapped[str] = mapped_column(String(20), nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)

    commission_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CommissionType.PERCENTAGE.value,
    )
    commission_value: Mapped[Decimal] = mapped_column(
        RateType, nullable=False, default=Decimal("0"),
    )

    has_production: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def commission_policy(self) -> CommissionPolicy:
        return CommissionPolicy(
            commission_type=CommissionType(self.commission_type),
            value=self.commission_value,
        )

    def to_snapshot(self) -> MaterialSnapshot:
        """Freeze the current catalog values."""
        return MaterialSnapshot(
            material_id=self.id,
            sq_code=self.sq_code,
            name=self.name,
            units_per_packet=self.units_per_packet,
            mrp_per_packet=self.mrp_per_packet,
            hsn_code=self.hsn_code,
            gst_rate=self.gst_rate,
            commission_policy=self.commission_policy,
            is_active=self.is_active,
            has_production=self.has_production,
        )

    def __repr__(self) -> str:
        return f"<Material {self.sq_code} upp={self.units_per_packet} mrp={self.mrp_per_packet}>"
