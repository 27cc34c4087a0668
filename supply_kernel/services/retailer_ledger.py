"""
RetailerLedger -- stock held by retailers, sold unit by unit.

Responsibility:
    Owns every mutation of ``RetailerInventory``: receiving goods against a
    confirmed GRN and selling loose units, opening whole packets when the
    loose stock is short.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the dispatch (GRN)
    and sales modules inside their ``transaction()`` scope.

Invariants enforced:
    - 0 <= loose_units < units_per_packet after every receive_goods and
      sell_units call.  Incoming loose units that reach a whole packet are
      folded into full_packets; a sale leaving loose >= upp raises
      InternalConsistencyError.
    - Every balance change is logged; the deltas of PACKET_OPEN and SALE
      rows together equal the change made by one sale.

Failure modes:
    - InvalidArgumentError: negative quantities, or units_requested <= 0.
    - NotFoundError: unknown material.
    - InsufficientInventoryError: the retailer cannot cover the sale.
    - InternalConsistencyError: post-sale loose balance out of range.
"""

from typing import NoReturn
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.domain.dtos import (
    LocationType,
    ReferenceType,
    RetailerStock,
    TransactionType,
)
from supply_kernel.exceptions import (
    InsufficientInventoryError,
    InternalConsistencyError,
    InvalidArgumentError,
    NotFoundError,
)
from supply_kernel.logging_config import get_logger
from supply_kernel.models.inventory import RetailerInventory
from supply_kernel.models.material import Material
from supply_kernel.services.base import BaseService
from supply_kernel.services.inventory_log import InventoryLog

logger = get_logger("services.retailer_ledger")


class RetailerLedger(BaseService[RetailerInventory]):
    """
    Locked, logged mutations of retailer stock.

    Contract:
        Participates in the caller's transaction; flushes, never commits.

    Guarantees:
        - ``sell_units`` opens the minimum number of packets needed.
        - A missing row reads as zero stock.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._log = InventoryLog(session)

    def _units_per_packet(self, material_id: UUID) -> int:
        material = self.session.get(Material, material_id)
        if material is None:
            raise NotFoundError("Material", str(material_id))
        return material.units_per_packet

    def _lock(self, material_id: UUID, retailer_id: UUID) -> RetailerInventory | None:
        return self.session.execute(
            select(RetailerInventory)
            .where(
                RetailerInventory.material_id == material_id,
                RetailerInventory.retailer_id == retailer_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _lock_or_create(
        self, material_id: UUID, retailer_id: UUID, actor_id: UUID,
    ) -> RetailerInventory:
        row = self._lock(material_id, retailer_id)
        if row is not None:
            return row

        savepoint = self.session.begin_nested()
        try:
            row = RetailerInventory(
                material_id=material_id,
                retailer_id=retailer_id,
                full_packets=0,
                loose_units=0,
                created_by_id=actor_id,
            )
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
            return row
        except IntegrityError:
            logger.debug(
                "retailer_inventory_create_race_retry",
                extra={"material_id": str(material_id), "retailer_id": str(retailer_id)},
            )
            savepoint.rollback()
            row = self._lock(material_id, retailer_id)
            if row is None:
                raise
            return row

    def _append(
        self,
        row: RetailerInventory,
        actor_id: UUID,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: UUID,
        packets_delta: int,
        units_delta: int,
    ) -> None:
        self._log.append(
            material_id=row.material_id,
            actor_id=actor_id,
            transaction_type=transaction_type,
            location_type=LocationType.RETAILER,
            location_id=row.retailer_id,
            reference_type=reference_type,
            reference_id=reference_id,
            packets_delta=packets_delta,
            units_delta=units_delta,
            packets_after=row.full_packets,
            units_after=row.loose_units,
        )

    def receive_goods(
        self,
        material_id: UUID,
        retailer_id: UUID,
        packets: int,
        loose_units: int,
        actor_id: UUID,
        grn_id: UUID,
    ) -> RetailerStock | None:
        """
        Add goods confirmed on a GRN.

        Preconditions:
            - packets >= 0 and loose_units >= 0.

        Postconditions:
            - Both zero: no row, no log entry, returns None.
            - Otherwise one GRN_RECEIVE row.  Loose units reaching a whole
              packet are folded into full_packets and the recorded deltas
              reflect the fold.
        """
        for field, value in (("packets", packets), ("loose_units", loose_units)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidArgumentError(field, "must be an integer >= 0")
        if packets == 0 and loose_units == 0:
            return None

        upp = self._units_per_packet(material_id)
        row = self._lock_or_create(material_id, retailer_id, actor_id)

        folded, remaining_loose = divmod(row.loose_units + loose_units, upp)
        packets_delta = packets + folded
        units_delta = remaining_loose - row.loose_units

        row.full_packets += packets_delta
        row.loose_units = remaining_loose
        row.updated_by_id = actor_id
        self.session.flush()

        self._append(
            row, actor_id, TransactionType.GRN_RECEIVE, ReferenceType.GRN, grn_id,
            packets_delta, units_delta,
        )
        logger.info(
            "inventory_received",
            extra={
                "material_id": str(material_id),
                "retailer_id": str(retailer_id),
                "grn_id": str(grn_id),
                "packets_received": packets,
                "units_received": loose_units,
                "packets_folded": folded,
                "full_packets": row.full_packets,
                "loose_units": row.loose_units,
            },
        )
        return row.to_dto(upp)

    def sell_units(
        self,
        material_id: UUID,
        retailer_id: UUID,
        units_requested: int,
        actor_id: UUID,
        sale_id: UUID,
    ) -> int:
        """
        Remove ``units_requested`` loose units, opening packets as needed.

        Algorithm:
            1. total = full * upp + loose; refuse if total < requested.
            2. If loose covers the request, sell from loose only.
            3. Otherwise open ceil((requested - loose) / upp) packets and
               sell from the enlarged loose stock.
            4. Verify 0 <= loose < upp.
            5. Log PACKET_OPEN (if any packets opened) then SALE.

        Returns:
            The number of packets opened.

        Raises:
            InvalidArgumentError: If units_requested <= 0.
            InsufficientInventoryError: If stock cannot cover the request.
            InternalConsistencyError: If the result breaks 0 <= loose < upp.
        """
        if isinstance(units_requested, bool) or not isinstance(units_requested, int):
            raise InvalidArgumentError("units_requested", "must be an integer")
        if units_requested <= 0:
            raise InvalidArgumentError("units_requested", "must be > 0")

        upp = self._units_per_packet(material_id)
        row = self._lock(material_id, retailer_id)
        full = row.full_packets if row else 0
        loose = row.loose_units if row else 0
        total = full * upp + loose

        if row is None or total < units_requested:
            self._refuse(material_id, retailer_id, units_requested, full, loose)

        if loose >= units_requested:
            packets_opened = 0
            new_full = full
            new_loose = loose - units_requested
        else:
            shortfall = units_requested - loose
            packets_opened = -(-shortfall // upp)
            if packets_opened > full:
                self._refuse(material_id, retailer_id, units_requested, full, loose)
            new_full = full - packets_opened
            new_loose = loose + packets_opened * upp - units_requested

        if new_loose < 0 or new_loose >= upp:
            logger.critical(
                "retailer_inventory_invariant_broken",
                extra={
                    "material_id": str(material_id),
                    "retailer_id": str(retailer_id),
                    "loose_units": new_loose,
                    "units_per_packet": upp,
                },
            )
            raise InternalConsistencyError(
                "loose_lt_units_per_packet",
                f"retailer {retailer_id} material {material_id}: loose={new_loose} upp={upp}",
            )

        row.full_packets = new_full
        row.loose_units = new_loose
        row.updated_by_id = actor_id
        self.session.flush()

        if packets_opened:
            self._append(
                row, actor_id, TransactionType.PACKET_OPEN, ReferenceType.SALE, sale_id,
                -packets_opened, packets_opened * upp,
            )
        self._append(
            row, actor_id, TransactionType.SALE, ReferenceType.SALE, sale_id,
            0, -units_requested,
        )
        logger.info(
            "inventory_sold",
            extra={
                "material_id": str(material_id),
                "retailer_id": str(retailer_id),
                "sale_id": str(sale_id),
                "units_sold": units_requested,
                "packets_opened": packets_opened,
                "full_packets": new_full,
                "loose_units": new_loose,
            },
        )
        return packets_opened

    def _refuse(
        self,
        material_id: UUID,
        retailer_id: UUID,
        units_requested: int,
        full: int,
        loose: int,
    ) -> NoReturn:
        logger.warning(
            "inventory_sale_refused",
            extra={
                "material_id": str(material_id),
                "retailer_id": str(retailer_id),
                "requested_units": units_requested,
                "full_packets": full,
                "loose_units": loose,
            },
        )
        raise InsufficientInventoryError(
            material_id=material_id,
            location_id=retailer_id,
            requested_packets=0,
            requested_units=units_requested,
            available_packets=full,
            available_units=loose,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find(self, material_id: UUID, retailer_id: UUID) -> RetailerInventory | None:
        return self.session.execute(
            select(RetailerInventory).where(
                RetailerInventory.material_id == material_id,
                RetailerInventory.retailer_id == retailer_id,
            )
        ).scalar_one_or_none()

    def get_available_units(self, material_id: UUID, retailer_id: UUID) -> int:
        """full * upp + loose; 0 if the retailer never held the material."""
        row = self._find(material_id, retailer_id)
        if row is None:
            return 0
        return row.full_packets * self._units_per_packet(material_id) + row.loose_units

    def get_balance(self, material_id: UUID, retailer_id: UUID) -> RetailerStock:
        upp = self._units_per_packet(material_id)
        row = self._find(material_id, retailer_id)
        if row is None:
            return RetailerStock(
                material_id=material_id,
                retailer_id=retailer_id,
                full_packets=0,
                loose_units=0,
                units_per_packet=upp,
            )
        return row.to_dto(upp)
