"""
Module: supply_kernel.models.inventory
Responsibility: ORM persistence for the two stock ledgers and the append-only
    inventory transaction log that explains every balance change.
Architecture position: Kernel > Models.  May import from db/ and domain DTOs
    only.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - One ManufacturerInventory row per (material, manufacturer) and one
      RetailerInventory row per (material, retailer).
    - Every balance column is >= 0; blocked_packets <= full_packets and
      blocked_loose_units <= loose_units (check constraints).
    - InventoryTransaction rows are never updated or deleted (ORM listener
      in db/immutability.py).
    - For every (material, location), the sum of each delta column over the
      log equals the corresponding balance column.

Failure modes:
    - IntegrityError on duplicate ledger key or check-constraint breach.
    - ImmutabilityViolationError on UPDATE/DELETE of a transaction row.

Audit relevance:
    The transaction log is the only record of why stock moved.  Each row
    carries the after-balances so any point in a key's history can be read
    without replaying it.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base, TrackedBase, UUIDString
from supply_kernel.db.types import NotesType
from supply_kernel.domain.dtos import (
    LedgerEntry,
    LocationType,
    ManufacturerStock,
    ReferenceType,
    RetailerStock,
    TransactionType,
)


class ManufacturerInventory(TrackedBase):
    """
    Stock of one material held by one manufacturer.

    Guarantees:
        - available = full - blocked, for packets and loose units alike.
        - Blocked quantities are reserved for approved SRNs and leave the
          row only through dispatch execution or an explicit release.
    """

    __tablename__ = "manufacturer_inventory"

    __table_args__ = (
        UniqueConstraint("material_id", "manufacturer_id", name="uq_manufacturer_inventory_key"),
        CheckConstraint("full_packets >= 0", name="chk_mfr_full_nonneg"),
        CheckConstraint("blocked_packets >= 0", name="chk_mfr_blocked_nonneg"),
        CheckConstraint("loose_units >= 0", name="chk_mfr_loose_nonneg"),
        CheckConstraint("blocked_loose_units >= 0", name="chk_mfr_blocked_loose_nonneg"),
        CheckConstraint("blocked_packets <= full_packets", name="chk_mfr_blocked_le_full"),
        CheckConstraint("blocked_loose_units <= loose_units", name="chk_mfr_blocked_loose_le_loose"),
        Index("idx_mfr_inventory_manufacturer", "manufacturer_id"),
    )

    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    manufacturer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)

    full_packets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_packets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_loose_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def available_packets(self) -> int:
        return self.full_packets - self.blocked_packets

    @property
    def available_loose_units(self) -> int:
        return self.loose_units - self.blocked_loose_units

    def to_dto(self) -> ManufacturerStock:
        return ManufacturerStock(
            material_id=self.material_id,
            manufacturer_id=self.manufacturer_id,
            full_packets=self.full_packets,
            blocked_packets=self.blocked_packets,
            loose_units=self.loose_units,
            blocked_loose_units=self.blocked_loose_units,
        )

    def __repr__(self) -> str:
        return (
            f"<ManufacturerInventory material={self.material_id} "
            f"full={self.full_packets}/{self.blocked_packets} "
            f"loose={self.loose_units}/{self.blocked_loose_units}>"
        )


class RetailerInventory(TrackedBase):
    """
    Stock of one material held by one retailer.

    Guarantees:
        - 0 <= loose_units < units_per_packet once any ledger operation
          has run on the row.
    """

    __tablename__ = "retailer_inventory"

    __table_args__ = (
        UniqueConstraint("material_id", "retailer_id", name="uq_retailer_inventory_key"),
        CheckConstraint("full_packets >= 0", name="chk_ret_full_nonneg"),
        CheckConstraint("loose_units >= 0", name="chk_ret_loose_nonneg"),
        Index("idx_ret_inventory_retailer", "retailer_id"),
    )

    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    retailer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)

    full_packets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loose_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dto(self, units_per_packet: int) -> RetailerStock:
        return RetailerStock(
            material_id=self.material_id,
            retailer_id=self.retailer_id,
            full_packets=self.full_packets,
            loose_units=self.loose_units,
            units_per_packet=units_per_packet,
        )

    def __repr__(self) -> str:
        return (
            f"<RetailerInventory material={self.material_id} "
            f"full={self.full_packets} loose={self.loose_units}>"
        )


class InventoryTransaction(Base):
    """
    One append-only row of the inventory log.

    Contract:
        Written by the ledger services in the same flush as the balance
        change it describes.  Never written by anything else.

    Guarantees:
        - Deltas are signed; afters are the row's balances after the change.
        - Retailer rows always carry zero blocked deltas.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        Index("idx_inv_txn_key", "material_id", "location_type", "location_id"),
        Index("idx_inv_txn_reference", "reference_type", "reference_id"),
    )

    # Log order.  Assigned by the database at INSERT; no counter row is
    # locked, so writers only contend on the balance rows they change.
    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True, default=uuid4)

    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    packets_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    units_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_packets_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_units_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    reference_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    packets_after: Mapped[int] = mapped_column(Integer, nullable=False)
    units_after: Mapped[int] = mapped_column(Integer, nullable=False)
    blocked_packets_after: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_units_after: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    notes: Mapped[str | None] = mapped_column(NotesType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_dto(self) -> LedgerEntry:
        return LedgerEntry(
            entry_id=self.id,
            seq=self.seq,
            material_id=self.material_id,
            actor_id=self.actor_id,
            transaction_type=TransactionType(self.transaction_type),
            location_type=LocationType(self.location_type),
            location_id=self.location_id,
            packets_delta=self.packets_delta,
            units_delta=self.units_delta,
            blocked_packets_delta=self.blocked_packets_delta,
            blocked_units_delta=self.blocked_units_delta,
            reference_type=ReferenceType(self.reference_type),
            reference_id=self.reference_id,
            packets_after=self.packets_after,
            units_after=self.units_after,
            blocked_packets_after=self.blocked_packets_after,
            blocked_units_after=self.blocked_units_after,
            notes=self.notes,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.transaction_type} {self.location_type} "
            f"p{self.packets_delta:+d} u{self.units_delta:+d}>"
        )
