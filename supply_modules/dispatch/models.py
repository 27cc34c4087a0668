"""
Dispatch Domain Models (``supply_modules.dispatch.models``).

Responsibility
--------------
Frozen read models for dispatch orders and goods received notes.  Dispatch
lines carry the price, HSN code, and GST rate frozen when the dispatch was
created; later catalog edits never change them.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class DispatchStatus(str, Enum):
    """Dispatch lifecycle.  Must align with ``DISPATCH_WORKFLOW.states``."""
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"


class GRNStatus(str, Enum):
    """GRN lifecycle.  Must align with ``GRN_WORKFLOW.states``."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


@dataclass(frozen=True)
class DispatchItem:
    item_id: UUID
    material_id: UUID
    packets: int
    loose_units: int
    unit_price: Decimal
    mrp_per_packet: Decimal
    line_total: Decimal
    hsn_code: str
    gst_rate: Decimal


@dataclass(frozen=True)
class DispatchOrder:
    """Read model of a dispatch order created from an approved SRN."""
    dispatch_id: UUID
    dispatch_number: str
    srn_id: UUID
    manufacturer_id: UUID
    retailer_id: UUID
    status: DispatchStatus
    subtotal: Decimal
    items: tuple[DispatchItem, ...] = field(default_factory=tuple)
    executed_at: datetime | None = None
    delivered_at: datetime | None = None


@dataclass(frozen=True)
class GRNItem:
    item_id: UUID
    material_id: UUID
    expected_packets: int
    expected_loose_units: int
    received_packets: int | None = None
    received_loose_units: int | None = None

    @property
    def has_discrepancy(self) -> bool:
        """True once confirmed with quantities different from the dispatch."""
        if self.received_packets is None or self.received_loose_units is None:
            return False
        return (
            self.received_packets != self.expected_packets
            or self.received_loose_units != self.expected_loose_units
        )


@dataclass(frozen=True)
class GRN:
    """Read model of a goods received note."""
    grn_id: UUID
    grn_number: str
    dispatch_id: UUID
    retailer_id: UUID
    status: GRNStatus
    items: tuple[GRNItem, ...] = field(default_factory=tuple)
    confirmed_at: datetime | None = None
    notes: str | None = None

    @property
    def has_discrepancy(self) -> bool:
        return any(item.has_discrepancy for item in self.items)
