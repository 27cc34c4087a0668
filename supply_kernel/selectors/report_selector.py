"""
Module: supply_kernel.selectors.report_selector
Responsibility: Admin inventory reports.  Sums both stock ledgers per
    manufacturer, per material and per retailer for the dashboard views.
Architecture position: Kernel > Selectors.  Read-only; never mutates.

Invariants enforced:
    - Totals are summed from the stored balance rows at query time, so a
      report always agrees with ``InventorySelector`` balances.
    - Only active parties are reported, and a party with no stock rows is
      left out rather than listed with zeros.

Non-goals:
    - Role checks.  Callers expose these views to admins only, as with
      every other selector.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.domain.access import Role
from supply_kernel.domain.dtos import ManufacturerStock
from supply_kernel.exceptions import NotFoundError
from supply_kernel.models.inventory import ManufacturerInventory, RetailerInventory
from supply_kernel.models.material import Material
from supply_kernel.models.party import Party
from supply_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ManufacturerInventoryTotals:
    """One manufacturer's stock summed over every material it holds."""

    manufacturer_id: UUID
    manufacturer_name: str
    material_count: int
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
class InventorySummary:
    """Manufacturer stock across the whole network."""

    manufacturer_count: int
    material_count: int
    full_packets: int
    blocked_packets: int
    loose_units: int
    blocked_loose_units: int
    by_manufacturer: tuple[ManufacturerInventoryTotals, ...]


@dataclass(frozen=True)
class ManufacturerInventoryLine:
    """One material at one manufacturer, with the catalog fields a report shows."""

    sq_code: str
    material_name: str
    units_per_packet: int
    stock: ManufacturerStock


@dataclass(frozen=True)
class ManufacturerInventoryDetail:
    manufacturer_id: UUID
    manufacturer_name: str
    lines: tuple[ManufacturerInventoryLine, ...]


@dataclass(frozen=True)
class MaterialInventoryTotals:
    """One material summed over the manufacturers that hold it."""

    material_id: UUID
    sq_code: str
    material_name: str
    full_packets: int
    loose_units: int
    by_manufacturer: tuple[ManufacturerStock, ...]


@dataclass(frozen=True)
class RetailerInventoryTotals:
    retailer_id: UUID
    retailer_name: str
    material_count: int
    full_packets: int
    loose_units: int


class ReportSelector(BaseSelector[ManufacturerInventory]):
    """
    Aggregate stock views for administrators.

    Contract:
        Every method is a pure read over the current balances.  Ordering
        is by party name, then material name, so repeated calls list rows
        the same way.
    """

    def inventory_by_manufacturer(self) -> list[ManufacturerInventoryTotals]:
        rows = self.session.execute(
            select(
                Party.id,
                Party.name,
                func.count(ManufacturerInventory.id).label("material_count"),
                func.sum(ManufacturerInventory.full_packets).label("full_packets"),
                func.sum(ManufacturerInventory.blocked_packets).label("blocked_packets"),
                func.sum(ManufacturerInventory.loose_units).label("loose_units"),
                func.sum(ManufacturerInventory.blocked_loose_units).label("blocked_loose_units"),
            )
            .join(Party, ManufacturerInventory.manufacturer_id == Party.id)
            .where(Party.role == Role.MANUFACTURER.value, Party.is_active.is_(True))
            .group_by(Party.id, Party.name)
            .order_by(Party.name, Party.id)
        ).all()
        return [
            ManufacturerInventoryTotals(
                manufacturer_id=row.id,
                manufacturer_name=row.name,
                material_count=row.material_count,
                full_packets=int(row.full_packets or 0),
                blocked_packets=int(row.blocked_packets or 0),
                loose_units=int(row.loose_units or 0),
                blocked_loose_units=int(row.blocked_loose_units or 0),
            )
            for row in rows
        ]

    def inventory_summary(self) -> InventorySummary:
        by_manufacturer = self.inventory_by_manufacturer()
        material_count = self.session.execute(
            select(func.count(func.distinct(ManufacturerInventory.material_id)))
            .join(Party, ManufacturerInventory.manufacturer_id == Party.id)
            .where(Party.role == Role.MANUFACTURER.value, Party.is_active.is_(True))
        ).scalar_one()
        return InventorySummary(
            manufacturer_count=len(by_manufacturer),
            material_count=material_count,
            full_packets=sum(m.full_packets for m in by_manufacturer),
            blocked_packets=sum(m.blocked_packets for m in by_manufacturer),
            loose_units=sum(m.loose_units for m in by_manufacturer),
            blocked_loose_units=sum(m.blocked_loose_units for m in by_manufacturer),
            by_manufacturer=tuple(by_manufacturer),
        )

    def manufacturer_inventory_detail(self, manufacturer_id: UUID) -> ManufacturerInventoryDetail:
        """
        Every material a manufacturer holds, by material name.

        Raises:
            NotFoundError: If ``manufacturer_id`` is not a manufacturer.
        """
        party = self.session.get(Party, manufacturer_id)
        if party is None or party.role != Role.MANUFACTURER.value:
            raise NotFoundError("Manufacturer", str(manufacturer_id))
        rows = self.session.execute(
            select(ManufacturerInventory, Material)
            .join(Material, ManufacturerInventory.material_id == Material.id)
            .where(ManufacturerInventory.manufacturer_id == manufacturer_id)
            .order_by(Material.name, Material.sq_code)
        ).all()
        return ManufacturerInventoryDetail(
            manufacturer_id=party.id,
            manufacturer_name=party.name,
            lines=tuple(
                ManufacturerInventoryLine(
                    sq_code=material.sq_code,
                    material_name=material.name,
                    units_per_packet=material.units_per_packet,
                    stock=stock.to_dto(),
                )
                for stock, material in rows
            ),
        )

    def inventory_by_material(self) -> list[MaterialInventoryTotals]:
        """Active materials with stock at any manufacturer."""
        rows = self.session.execute(
            select(Material, ManufacturerInventory)
            .join(ManufacturerInventory, ManufacturerInventory.material_id == Material.id)
            .join(Party, ManufacturerInventory.manufacturer_id == Party.id)
            .where(Material.is_active.is_(True))
            .order_by(Material.name, Material.sq_code, Party.name)
        ).all()

        grouped: dict[UUID, tuple[Material, list[ManufacturerStock]]] = {}
        for material, stock in rows:
            grouped.setdefault(material.id, (material, []))[1].append(stock.to_dto())

        return [
            MaterialInventoryTotals(
                material_id=material.id,
                sq_code=material.sq_code,
                material_name=material.name,
                full_packets=sum(s.full_packets for s in stocks),
                loose_units=sum(s.loose_units for s in stocks),
                by_manufacturer=tuple(stocks),
            )
            for material, stocks in grouped.values()
        ]

    def retailer_inventory_summary(self) -> list[RetailerInventoryTotals]:
        rows = self.session.execute(
            select(
                Party.id,
                Party.name,
                func.count(RetailerInventory.id).label("material_count"),
                func.sum(RetailerInventory.full_packets).label("full_packets"),
                func.sum(RetailerInventory.loose_units).label("loose_units"),
            )
            .join(Party, RetailerInventory.retailer_id == Party.id)
            .where(Party.role == Role.RETAILER.value, Party.is_active.is_(True))
            .group_by(Party.id, Party.name)
            .order_by(Party.name, Party.id)
        ).all()
        return [
            RetailerInventoryTotals(
                retailer_id=row.id,
                retailer_name=row.name,
                material_count=row.material_count,
                full_packets=int(row.full_packets or 0),
                loose_units=int(row.loose_units or 0),
            )
            for row in rows
        ]
