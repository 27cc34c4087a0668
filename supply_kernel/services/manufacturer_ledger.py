"""
ManufacturerLedger -- stock held by manufacturers, with dispatch reservations.

Responsibility:
    Owns every mutation of ``ManufacturerInventory``: production intake,
    blocking stock for an approved SRN, releasing a block, executing a
    dispatch, and restocking from an approved return.  Each mutation locks
    the (material, manufacturer) row, changes it, and appends one
    transaction-log row carrying the resulting balances.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the production, srn,
    dispatch, and returns modules inside their ``transaction()`` scope.

Invariants enforced:
    - blocked_packets <= full_packets and blocked_loose_units <= loose_units
      after every operation; a breach raises InternalConsistencyError
      instead of clamping.
    - available = full - blocked; blocking never exceeds availability.
    - Every balance change is matched by exactly one log row whose deltas
      sum with all prior rows to the stored balance.

Failure modes:
    - InvalidArgumentError: negative quantities, or both zero.
    - InsufficientInventoryError: block larger than available stock.
    - InsufficientBlockedError: dispatch or release larger than the block.
    - InternalConsistencyError: post-mutation invariant broken (a bug).

Audit relevance:
    Every mutation logs an ``inventory_*`` event with material, location,
    deltas, and after-balances, and writes an InventoryTransaction row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.domain.dtos import (
    LocationType,
    ManufacturerStock,
    ReferenceType,
    TransactionType,
)
from supply_kernel.exceptions import (
    InsufficientBlockedError,
    InsufficientInventoryError,
    InternalConsistencyError,
)
from supply_kernel.logging_config import get_logger
from supply_kernel.models.inventory import ManufacturerInventory
from supply_kernel.services.base import BaseService
from supply_kernel.services.inventory_log import InventoryLog, require_quantities

logger = get_logger("services.manufacturer_ledger")


class ManufacturerLedger(BaseService[ManufacturerInventory]):
    """
    Locked, logged mutations of manufacturer stock.

    Contract:
        Every mutating method participates in the caller's transaction and
        flushes; none commits.

    Guarantees:
        - Row-level ``SELECT ... FOR UPDATE`` on every read that precedes a
          write.
        - A missing row reads as zero stock.

    Non-goals:
        - Does NOT check who may call it; module services do.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._log = InventoryLog(session)

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def _lock(self, material_id: UUID, manufacturer_id: UUID) -> ManufacturerInventory | None:
        return self.session.execute(
            select(ManufacturerInventory)
            .where(
                ManufacturerInventory.material_id == material_id,
                ManufacturerInventory.manufacturer_id == manufacturer_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _lock_or_create(
        self, material_id: UUID, manufacturer_id: UUID, actor_id: UUID,
    ) -> ManufacturerInventory:
        row = self._lock(material_id, manufacturer_id)
        if row is not None:
            return row

        savepoint = self.session.begin_nested()
        try:
            row = ManufacturerInventory(
                material_id=material_id,
                manufacturer_id=manufacturer_id,
                full_packets=0,
                blocked_packets=0,
                loose_units=0,
                blocked_loose_units=0,
                created_by_id=actor_id,
            )
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
            return row
        except IntegrityError:
            logger.debug(
                "manufacturer_inventory_create_race_retry",
                extra={"material_id": str(material_id), "manufacturer_id": str(manufacturer_id)},
            )
            savepoint.rollback()
            row = self._lock(material_id, manufacturer_id)
            if row is None:
                raise
            return row

    def _check_invariants(self, row: ManufacturerInventory) -> None:
        if (
            row.blocked_packets > row.full_packets
            or row.blocked_loose_units > row.loose_units
            or min(row.full_packets, row.blocked_packets,
                   row.loose_units, row.blocked_loose_units) < 0
        ):
            logger.critical(
                "manufacturer_inventory_invariant_broken",
                extra={
                    "material_id": str(row.material_id),
                    "manufacturer_id": str(row.manufacturer_id),
                    "full_packets": row.full_packets,
                    "blocked_packets": row.blocked_packets,
                    "loose_units": row.loose_units,
                    "blocked_loose_units": row.blocked_loose_units,
                },
            )
            raise InternalConsistencyError(
                "blocked_le_full",
                f"manufacturer row {row.id}: full={row.full_packets} "
                f"blocked={row.blocked_packets} loose={row.loose_units} "
                f"blocked_loose={row.blocked_loose_units}",
            )

    def _record(
        self,
        row: ManufacturerInventory,
        *,
        event: str,
        actor_id: UUID,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: UUID | None,
        packets_delta: int = 0,
        units_delta: int = 0,
        blocked_packets_delta: int = 0,
        blocked_units_delta: int = 0,
        notes: str | None = None,
    ) -> None:
        self._check_invariants(row)
        row.updated_by_id = actor_id
        self.session.flush()
        self._log.append(
            material_id=row.material_id,
            actor_id=actor_id,
            transaction_type=transaction_type,
            location_type=LocationType.MANUFACTURER,
            location_id=row.manufacturer_id,
            reference_type=reference_type,
            reference_id=reference_id,
            packets_delta=packets_delta,
            units_delta=units_delta,
            blocked_packets_delta=blocked_packets_delta,
            blocked_units_delta=blocked_units_delta,
            packets_after=row.full_packets,
            units_after=row.loose_units,
            blocked_packets_after=row.blocked_packets,
            blocked_units_after=row.blocked_loose_units,
            notes=notes,
        )
        logger.info(
            event,
            extra={
                "material_id": str(row.material_id),
                "manufacturer_id": str(row.manufacturer_id),
                "reference_id": str(reference_id) if reference_id else None,
                "packets_delta": packets_delta,
                "units_delta": units_delta,
                "blocked_packets_delta": blocked_packets_delta,
                "blocked_units_delta": blocked_units_delta,
                "full_packets": row.full_packets,
                "blocked_packets": row.blocked_packets,
                "loose_units": row.loose_units,
                "blocked_loose_units": row.blocked_loose_units,
            },
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_production(
        self,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        reference_id: UUID | None,
        notes: str | None = None,
    ) -> ManufacturerStock:
        """
        Add freshly produced stock.

        Postconditions:
            - full_packets += packets, loose_units += loose_units.
            - One PRODUCTION log row referencing the batch.
        """
        require_quantities(packets, loose_units)
        row = self._lock_or_create(material_id, manufacturer_id, actor_id)
        row.full_packets += packets
        row.loose_units += loose_units
        self._record(
            row,
            event="inventory_produced",
            actor_id=actor_id,
            transaction_type=TransactionType.PRODUCTION,
            reference_type=ReferenceType.PRODUCTION,
            reference_id=reference_id,
            packets_delta=packets,
            units_delta=loose_units,
            notes=notes,
        )
        return row.to_dto()

    def block_for_dispatch(
        self,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        srn_id: UUID,
    ) -> ManufacturerStock:
        """
        Reserve available stock for an approved SRN line.

        Preconditions:
            - available_packets >= packets and
              available_loose_units >= loose_units.

        Postconditions:
            - blocked columns increase; full columns unchanged.

        Raises:
            InsufficientInventoryError: If either quantity exceeds availability.
        """
        require_quantities(packets, loose_units)
        row = self._lock(material_id, manufacturer_id)
        available_packets = row.available_packets if row else 0
        available_units = row.available_loose_units if row else 0
        if row is None or available_packets < packets or available_units < loose_units:
            logger.warning(
                "inventory_block_refused",
                extra={
                    "material_id": str(material_id),
                    "manufacturer_id": str(manufacturer_id),
                    "requested_packets": packets,
                    "requested_units": loose_units,
                    "available_packets": available_packets,
                    "available_units": available_units,
                },
            )
            raise InsufficientInventoryError(
                material_id=material_id,
                location_id=manufacturer_id,
                requested_packets=packets,
                requested_units=loose_units,
                available_packets=available_packets,
                available_units=available_units,
            )

        row.blocked_packets += packets
        row.blocked_loose_units += loose_units
        self._record(
            row,
            event="inventory_blocked",
            actor_id=actor_id,
            transaction_type=TransactionType.DISPATCH_BLOCK,
            reference_type=ReferenceType.SRN,
            reference_id=srn_id,
            blocked_packets_delta=packets,
            blocked_units_delta=loose_units,
        )
        return row.to_dto()

    def _require_blocked(
        self,
        row: ManufacturerInventory | None,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        event: str,
    ) -> ManufacturerInventory:
        blocked_packets = row.blocked_packets if row else 0
        blocked_units = row.blocked_loose_units if row else 0
        if row is None or blocked_packets < packets or blocked_units < loose_units:
            logger.warning(
                event,
                extra={
                    "material_id": str(material_id),
                    "manufacturer_id": str(manufacturer_id),
                    "requested_packets": packets,
                    "requested_units": loose_units,
                    "blocked_packets": blocked_packets,
                    "blocked_units": blocked_units,
                },
            )
            raise InsufficientBlockedError(
                material_id=material_id,
                location_id=manufacturer_id,
                requested_packets=packets,
                requested_units=loose_units,
                blocked_packets=blocked_packets,
                blocked_units=blocked_units,
            )
        return row

    def release_block(
        self,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        srn_id: UUID,
    ) -> ManufacturerStock:
        """
        Return a reservation to available stock without moving goods.

        Raises:
            InsufficientBlockedError: If the block is smaller than requested.
        """
        require_quantities(packets, loose_units)
        row = self._require_blocked(
            self._lock(material_id, manufacturer_id),
            material_id, manufacturer_id, packets, loose_units,
            "inventory_release_refused",
        )
        row.blocked_packets -= packets
        row.blocked_loose_units -= loose_units
        self._record(
            row,
            event="inventory_block_released",
            actor_id=actor_id,
            transaction_type=TransactionType.DISPATCH_UNBLOCK,
            reference_type=ReferenceType.SRN,
            reference_id=srn_id,
            blocked_packets_delta=-packets,
            blocked_units_delta=-loose_units,
        )
        return row.to_dto()

    def execute_dispatch(
        self,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        dispatch_id: UUID,
    ) -> ManufacturerStock:
        """
        Ship reserved stock: the goods leave the manufacturer.

        Postconditions:
            - full and blocked columns both decrease by the quantities.

        Raises:
            InsufficientBlockedError: If the block is smaller than requested.
        """
        require_quantities(packets, loose_units)
        row = self._require_blocked(
            self._lock(material_id, manufacturer_id),
            material_id, manufacturer_id, packets, loose_units,
            "inventory_dispatch_refused",
        )
        row.full_packets -= packets
        row.blocked_packets -= packets
        row.loose_units -= loose_units
        row.blocked_loose_units -= loose_units
        self._record(
            row,
            event="inventory_dispatched",
            actor_id=actor_id,
            transaction_type=TransactionType.DISPATCH_EXECUTE,
            reference_type=ReferenceType.DISPATCH,
            reference_id=dispatch_id,
            packets_delta=-packets,
            units_delta=-loose_units,
            blocked_packets_delta=-packets,
            blocked_units_delta=-loose_units,
        )
        return row.to_dto()

    def restock_from_return(
        self,
        material_id: UUID,
        manufacturer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        return_id: UUID,
    ) -> ManufacturerStock:
        """Put returned goods back into manufacturer stock."""
        require_quantities(packets, loose_units)
        row = self._lock_or_create(material_id, manufacturer_id, actor_id)
        row.full_packets += packets
        row.loose_units += loose_units
        self._record(
            row,
            event="inventory_restocked",
            actor_id=actor_id,
            transaction_type=TransactionType.RETURN_RESTOCK,
            reference_type=ReferenceType.RETURN,
            reference_id=return_id,
            packets_delta=packets,
            units_delta=loose_units,
        )
        return row.to_dto()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find(self, material_id: UUID, manufacturer_id: UUID) -> ManufacturerInventory | None:
        return self.session.execute(
            select(ManufacturerInventory).where(
                ManufacturerInventory.material_id == material_id,
                ManufacturerInventory.manufacturer_id == manufacturer_id,
            )
        ).scalar_one_or_none()

    def get_available_packets(self, material_id: UUID, manufacturer_id: UUID) -> int:
        row = self._find(material_id, manufacturer_id)
        return row.available_packets if row else 0

    def get_available_loose_units(self, material_id: UUID, manufacturer_id: UUID) -> int:
        row = self._find(material_id, manufacturer_id)
        return row.available_loose_units if row else 0

    def get_available(self, material_id: UUID, manufacturer_id: UUID) -> tuple[int, int]:
        """(available_packets, available_loose_units); (0, 0) if no row."""
        row = self._find(material_id, manufacturer_id)
        if row is None:
            return 0, 0
        return row.available_packets, row.available_loose_units

    def get_stock(self, material_id: UUID, manufacturer_id: UUID) -> ManufacturerStock:
        row = self._find(material_id, manufacturer_id)
        if row is None:
            return ManufacturerStock(
                material_id=material_id,
                manufacturer_id=manufacturer_id,
                full_packets=0,
                blocked_packets=0,
                loose_units=0,
                blocked_loose_units=0,
            )
        return row.to_dto()
