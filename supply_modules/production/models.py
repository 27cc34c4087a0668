"""
Production Domain Models (``supply_modules.production.models``).

Frozen value objects returned by ``ProductionService``.  No I/O.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID


@dataclass(frozen=True)
class ProductionBatch:
    """One recorded production run of a single material."""
    batch_id: UUID
    batch_number: str
    material_id: UUID
    manufacturer_id: UUID
    packets: int
    loose_units: int
    manufacture_date: date
    hsn_code_snapshot: str
    expiry_date: date | None = None
    manufacturer_batch_ref: str | None = None
    notes: str | None = None
