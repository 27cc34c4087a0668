"""
SRN Module (``supply_modules.srn``).

Responsibility
--------------
Stock requisition notes: a retailer drafts and submits a request for
materials; an admin approves it (in full or in part, binding a
manufacturer and blocking that manufacturer's stock) or rejects it.

Architecture position
---------------------
**Modules layer** -- declarative workflow plus a service facade over the
kernel ManufacturerLedger, MaterialService, and PartyService.

Invariants enforced
-------------------
* Status transitions follow ``SRN_WORKFLOW``; terminal states never move.
* Approval blocks stock atomically for every approved line.
"""

from supply_modules.srn.models import (
    SRN,
    SRNApproval,
    SRNItem,
    SRNLineRequest,
    SRNRejection,
    SRNStatus,
)
from supply_modules.srn.service import SRNService
from supply_modules.srn.workflows import SRN_WORKFLOW

__all__ = [
    "SRN",
    "SRNApproval",
    "SRNItem",
    "SRNLineRequest",
    "SRNRejection",
    "SRNService",
    "SRNStatus",
    "SRN_WORKFLOW",
]
