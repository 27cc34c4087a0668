"""
Module: supply_kernel.selectors.inventory_selector
Responsibility: Read-only views of both stock ledgers and the inventory
    transaction log, including reconciliation of stored balances against
    the sum of logged deltas.
Architecture position: Kernel > Selectors.  Read-only; never mutates.

Invariants enforced:
    - reconcile() derives the logged figures exclusively from
      InventoryTransaction rows, so a stored balance that drifted from its
      log is reported, never hidden.

Audit relevance:
    ``reconcile`` is the check behind the ledger property "sum of deltas
    per key equals the balance".  Run it after any suspicious incident.
"""

from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.domain.dtos import (
    LedgerEntry,
    LocationType,
    ManufacturerStock,
    ReconciliationResult,
    RetailerStock,
)
from supply_kernel.exceptions import NotFoundError
from supply_kernel.models.inventory import (
    InventoryTransaction,
    ManufacturerInventory,
    RetailerInventory,
)
from supply_kernel.models.material import Material
from supply_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[InventoryTransaction]):
    """Balances, history, and reconciliation for inventory keys."""

    def manufacturer_stock(self, material_id: UUID, manufacturer_id: UUID) -> ManufacturerStock:
        row = self.session.execute(
            select(ManufacturerInventory).where(
                ManufacturerInventory.material_id == material_id,
                ManufacturerInventory.manufacturer_id == manufacturer_id,
            )
        ).scalar_one_or_none()
        if row is None:
            return ManufacturerStock(material_id, manufacturer_id, 0, 0, 0, 0)
        return row.to_dto()

    def retailer_stock(self, material_id: UUID, retailer_id: UUID) -> RetailerStock:
        material = self.session.get(Material, material_id)
        if material is None:
            raise NotFoundError("Material", str(material_id))
        row = self.session.execute(
            select(RetailerInventory).where(
                RetailerInventory.material_id == material_id,
                RetailerInventory.retailer_id == retailer_id,
            )
        ).scalar_one_or_none()
        if row is None:
            return RetailerStock(material_id, retailer_id, 0, 0, material.units_per_packet)
        return row.to_dto(material.units_per_packet)

    def manufacturer_stock_for(self, manufacturer_id: UUID) -> list[ManufacturerStock]:
        rows = self.session.execute(
            select(ManufacturerInventory)
            .where(ManufacturerInventory.manufacturer_id == manufacturer_id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def retailer_stock_for(self, retailer_id: UUID) -> list[RetailerStock]:
        """Every material a retailer holds, by SQ code."""
        rows = self.session.execute(
            select(RetailerInventory, Material.units_per_packet)
            .join(Material, RetailerInventory.material_id == Material.id)
            .where(RetailerInventory.retailer_id == retailer_id)
            .order_by(Material.sq_code)
        ).all()
        return [row.to_dto(units_per_packet) for row, units_per_packet in rows]

    def transactions(
        self,
        material_id: UUID,
        location_id: UUID,
        location_type: LocationType | None = None,
    ) -> list[LedgerEntry]:
        """Log rows for one key, oldest first."""
        stmt = select(InventoryTransaction).where(
            InventoryTransaction.material_id == material_id,
            InventoryTransaction.location_id == location_id,
        )
        if location_type is not None:
            stmt = stmt.where(InventoryTransaction.location_type == location_type.value)
        rows = self.session.execute(stmt.order_by(InventoryTransaction.seq)).scalars().all()
        return [row.to_dto() for row in rows]

    def transactions_for_reference(self, reference_id: UUID) -> list[LedgerEntry]:
        rows = self.session.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.reference_id == reference_id)
            .order_by(InventoryTransaction.seq)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def reconcile(
        self,
        material_id: UUID,
        location_type: LocationType,
        location_id: UUID,
    ) -> ReconciliationResult:
        """Compare the stored balance with the sums of the logged deltas."""
        sums = self.session.execute(
            select(
                func.coalesce(func.sum(InventoryTransaction.packets_delta), 0),
                func.coalesce(func.sum(InventoryTransaction.units_delta), 0),
                func.coalesce(func.sum(InventoryTransaction.blocked_packets_delta), 0),
                func.coalesce(func.sum(InventoryTransaction.blocked_units_delta), 0),
                func.count(InventoryTransaction.id),
            ).where(
                InventoryTransaction.material_id == material_id,
                InventoryTransaction.location_type == location_type.value,
                InventoryTransaction.location_id == location_id,
            )
        ).one()

        if location_type == LocationType.MANUFACTURER:
            stock = self.manufacturer_stock(material_id, location_id)
            stored = (
                stock.full_packets,
                stock.loose_units,
                stock.blocked_packets,
                stock.blocked_loose_units,
            )
        else:
            row = self.session.execute(
                select(RetailerInventory).where(
                    RetailerInventory.material_id == material_id,
                    RetailerInventory.retailer_id == location_id,
                )
            ).scalar_one_or_none()
            stored = (row.full_packets, row.loose_units, 0, 0) if row else (0, 0, 0, 0)

        return ReconciliationResult(
            material_id=material_id,
            location_type=location_type,
            location_id=location_id,
            stored_packets=stored[0],
            stored_units=stored[1],
            stored_blocked_packets=stored[2],
            stored_blocked_units=stored[3],
            logged_packets=int(sums[0]),
            logged_units=int(sums[1]),
            logged_blocked_packets=int(sums[2]),
            logged_blocked_units=int(sums[3]),
            entry_count=int(sums[4]),
        )

    def reconcile_all(self) -> list[ReconciliationResult]:
        """Reconcile every manufacturer and retailer ledger row."""
        results = []
        for material_id, manufacturer_id in self.session.execute(
            select(ManufacturerInventory.material_id, ManufacturerInventory.manufacturer_id)
        ).all():
            results.append(self.reconcile(material_id, LocationType.MANUFACTURER, manufacturer_id))
        for material_id, retailer_id in self.session.execute(
            select(RetailerInventory.material_id, RetailerInventory.retailer_id)
        ).all():
            results.append(self.reconcile(material_id, LocationType.RETAILER, retailer_id))
        return results
