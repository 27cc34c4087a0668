"""Persistence models for the supply kernel."""

from supply_kernel.models.inventory import (
    InventoryTransaction,
    ManufacturerInventory,
    RetailerInventory,
)
from supply_kernel.models.material import Material
from supply_kernel.models.notification import NotificationModel
from supply_kernel.models.party import Party, RetailerAssignment

__all__ = [
    "InventoryTransaction",
    "ManufacturerInventory",
    "RetailerInventory",
    "Material",
    "NotificationModel",
    "Party",
    "RetailerAssignment",
]
