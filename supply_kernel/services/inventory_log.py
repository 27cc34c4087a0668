"""
InventoryLog -- the single writer of inventory transaction rows.

Responsibility:
    Appends one ``InventoryTransaction`` per ledger mutation.  Both ledgers
    call it after mutating their balance row and before returning.  Log
    order comes from the row's autoincrement key, so appending takes no
    lock beyond the balance row the ledger already holds.

Architecture position:
    Kernel > Services.  Called only by ManufacturerLedger and
    RetailerLedger.

Invariants enforced:
    - Rows are append-only (ORM listener in db/immutability.py).
    - seq is assigned by the database at INSERT and strictly increases in
      insertion order.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from supply_kernel.domain.dtos import LocationType, ReferenceType, TransactionType
from supply_kernel.exceptions import InvalidArgumentError
from supply_kernel.models.inventory import InventoryTransaction


class InventoryLog:
    """Appends transaction rows inside the caller's transaction."""

    def __init__(self, session: Session):
        self._session = session

    def append(
        self,
        *,
        material_id: UUID,
        actor_id: UUID,
        transaction_type: TransactionType,
        location_type: LocationType,
        location_id: UUID,
        reference_type: ReferenceType,
        reference_id: UUID | None,
        packets_delta: int,
        units_delta: int,
        packets_after: int,
        units_after: int,
        blocked_packets_delta: int = 0,
        blocked_units_delta: int = 0,
        blocked_packets_after: int = 0,
        blocked_units_after: int = 0,
        notes: str | None = None,
    ) -> InventoryTransaction:
        entry = InventoryTransaction(
            material_id=material_id,
            actor_id=actor_id,
            transaction_type=transaction_type.value,
            location_type=location_type.value,
            location_id=location_id,
            packets_delta=packets_delta,
            units_delta=units_delta,
            blocked_packets_delta=blocked_packets_delta,
            blocked_units_delta=blocked_units_delta,
            reference_type=reference_type.value,
            reference_id=reference_id,
            packets_after=packets_after,
            units_after=units_after,
            blocked_packets_after=blocked_packets_after,
            blocked_units_after=blocked_units_after,
            notes=notes,
        )
        self._session.add(entry)
        self._session.flush()
        return entry


def require_quantities(packets: int, loose_units: int) -> None:
    """Both non-negative integers and at least one positive."""
    for field, value in (("packets", packets), ("loose_units", loose_units)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError(field, "must be an integer")
        if value < 0:
            raise InvalidArgumentError(field, "must be >= 0")
    if packets == 0 and loose_units == 0:
        raise InvalidArgumentError("quantity", "packets or loose_units must be > 0")
