"""
Domain DTOs -- frozen values crossing the kernel boundary.

Responsibility:
    Enumerations for the inventory transaction log and the frozen read
    models returned by ledgers, selectors, and the material catalog.
    Services never hand ORM instances to callers.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from supply_kernel.domain.money import CommissionPolicy


class LocationType(str, Enum):
    """Which ledger a transaction row belongs to."""

    MANUFACTURER = "MANUFACTURER"
    RETAILER = "RETAILER"


class TransactionType(str, Enum):
    """Kind of ledger mutation recorded in the transaction log."""

    PRODUCTION = "PRODUCTION"
    DISPATCH_BLOCK = "DISPATCH_BLOCK"
    DISPATCH_UNBLOCK = "DISPATCH_UNBLOCK"
    DISPATCH_EXECUTE = "DISPATCH_EXECUTE"
    GRN_RECEIVE = "GRN_RECEIVE"
    PACKET_OPEN = "PACKET_OPEN"
    SALE = "SALE"
    RETURN_RESTOCK = "RETURN_RESTOCK"


class ReferenceType(str, Enum):
    """Document type a transaction row points back to."""

    PRODUCTION = "PRODUCTION"
    SRN = "SRN"
    DISPATCH = "DISPATCH"
    GRN = "GRN"
    SALE = "SALE"
    RETURN = "RETURN"


@dataclass(frozen=True)
class MaterialSnapshot:
    """Read-only view of a material at the moment it was resolved."""

    material_id: UUID
    sq_code: str
    name: str
    units_per_packet: int
    mrp_per_packet: Decimal
    hsn_code: str
    gst_rate: Decimal
    commission_policy: CommissionPolicy
    is_active: bool
    has_production: bool


@dataclass(frozen=True)
class ManufacturerStock:
    """Balance of one material at one manufacturer."""

    material_id: UUID
    manufacturer_id: UUID
    full_packets: int
    blocked_packets: int
    loose_units: int
    blocked_loose_units: int

    @property
    def available_packets(self) -> int:
        return self.full_packets - self.blocked_packets

    @property
    def available_loose_units(self) -> int:
        return self.loose_units - self.blocked_loose_units


@dataclass(frozen=True)
class RetailerStock:
    """Balance of one material at one retailer."""

    material_id: UUID
    retailer_id: UUID
    full_packets: int
    loose_units: int
    units_per_packet: int

    @property
    def total_units(self) -> int:
        return self.full_packets * self.units_per_packet + self.loose_units


@dataclass(frozen=True)
class LedgerEntry:
    """One row of the inventory transaction log."""

    entry_id: UUID
    seq: int
    material_id: UUID
    actor_id: UUID
    transaction_type: TransactionType
    location_type: LocationType
    location_id: UUID
    packets_delta: int
    units_delta: int
    blocked_packets_delta: int
    blocked_units_delta: int
    reference_type: ReferenceType
    reference_id: UUID | None
    packets_after: int
    units_after: int
    blocked_packets_after: int
    blocked_units_after: int
    notes: str | None
    created_at: datetime | None


@dataclass(frozen=True)
class ReconciliationResult:
    """Stored balance vs. the running sum of the transaction log for one key."""

    material_id: UUID
    location_type: LocationType
    location_id: UUID
    stored_packets: int
    stored_units: int
    stored_blocked_packets: int
    stored_blocked_units: int
    logged_packets: int
    logged_units: int
    logged_blocked_packets: int
    logged_blocked_units: int
    entry_count: int

    @property
    def is_balanced(self) -> bool:
        return (
            self.stored_packets == self.logged_packets
            and self.stored_units == self.logged_units
            and self.stored_blocked_packets == self.logged_blocked_packets
            and self.stored_blocked_units == self.logged_blocked_units
        )
