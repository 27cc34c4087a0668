"""Services for the supply kernel (write side)."""

from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import (
    NotificationOutbox,
    NotificationType,
    Notifier,
    OutboundNotification,
    StoredNotifier,
    deliver_outbox,
)
from supply_kernel.services.party_service import PartyInfo, PartyService
from supply_kernel.services.retailer_ledger import RetailerLedger
from supply_kernel.services.sequence_service import SequenceService

__all__ = [
    "ManufacturerLedger",
    "MaterialService",
    "NotificationOutbox",
    "NotificationType",
    "Notifier",
    "OutboundNotification",
    "PartyInfo",
    "PartyService",
    "RetailerLedger",
    "SequenceService",
    "StoredNotifier",
    "deliver_outbox",
]
