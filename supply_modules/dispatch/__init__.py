"""
Dispatch Module (``supply_modules.dispatch``).

Responsibility
--------------
Dispatch orders priced from approved SRNs, their shipment out of the
manufacturer's blocked stock, and the goods received notes through which
retailers confirm delivery.

Architecture position
---------------------
**Modules layer** -- workflows plus ``DispatchService`` / ``GRNService``
facades over the kernel ledgers and ``MoneyEngine``.
"""

from supply_modules.dispatch.models import (
    GRN,
    DispatchItem,
    DispatchOrder,
    DispatchStatus,
    GRNItem,
    GRNStatus,
)
from supply_modules.dispatch.service import DispatchService, GRNService
from supply_modules.dispatch.workflows import DISPATCH_WORKFLOW, GRN_WORKFLOW

__all__ = [
    "DISPATCH_WORKFLOW",
    "DispatchItem",
    "DispatchOrder",
    "DispatchService",
    "DispatchStatus",
    "GRN",
    "GRNItem",
    "GRNService",
    "GRNStatus",
    "GRN_WORKFLOW",
]
