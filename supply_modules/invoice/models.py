"""
Invoice Domain Models (``supply_modules.invoice.models``).

Frozen read models for invoices.  An invoice never changes after it is
generated, so the read model is the whole story.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class InvoiceItem:
    item_id: UUID
    material_id: UUID
    material_name: str
    hsn_code: str
    gst_rate: Decimal
    packets: int
    loose_units: int
    units_per_packet: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class Invoice:
    """
    Tax invoice for one confirmed GRN.

    Exactly one regime is populated: ``cgst``/``sgst`` for intrastate
    supply or ``igst`` for interstate supply.
    """
    invoice_id: UUID
    invoice_number: str
    grn_id: UUID
    retailer_id: UUID
    manufacturer_id: UUID
    is_interstate: bool
    subtotal: Decimal
    gst_rate: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal
    items: tuple[InvoiceItem, ...] = field(default_factory=tuple)
    created_at: datetime | None = None

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst
