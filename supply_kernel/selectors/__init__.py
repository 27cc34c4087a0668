"""Read-only query selectors for the supply kernel."""

from supply_kernel.selectors.inventory_selector import InventorySelector
from supply_kernel.selectors.notification_selector import NotificationSelector, NotificationView
from supply_kernel.selectors.party_selector import PartySelector
from supply_kernel.selectors.report_selector import (
    InventorySummary,
    ManufacturerInventoryDetail,
    ManufacturerInventoryLine,
    ManufacturerInventoryTotals,
    MaterialInventoryTotals,
    ReportSelector,
    RetailerInventoryTotals,
)

__all__ = [
    "InventorySelector",
    "InventorySummary",
    "ManufacturerInventoryDetail",
    "ManufacturerInventoryLine",
    "ManufacturerInventoryTotals",
    "MaterialInventoryTotals",
    "NotificationSelector",
    "NotificationView",
    "PartySelector",
    "ReportSelector",
    "RetailerInventoryTotals",
]
