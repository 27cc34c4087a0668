"""
SRN Domain Models (``supply_modules.srn.models``).

Responsibility
--------------
Frozen value objects for stock requisition notes: the retailer's request
lines, the admin's adjudication decision, and the read model returned by
``SRNService``.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.

Invariants enforced
-------------------
* Request lines reject negative quantities at construction.
* ``SRNApproval.lines`` maps material id to (packets, loose_units).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from supply_kernel.exceptions import InvalidArgumentError


class SRNStatus(str, Enum):
    """SRN lifecycle states.  Must align with ``workflows.SRN_WORKFLOW.states``."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    PARTIAL = "PARTIAL"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class SRNLineRequest:
    """One material requested by the retailer."""
    material_id: UUID
    packets: int = 0
    loose_units: int = 0

    def __post_init__(self) -> None:
        if self.packets < 0 or self.loose_units < 0:
            raise InvalidArgumentError("lines", "quantities must be >= 0")


@dataclass(frozen=True)
class SRNApproval:
    """
    Admin approval: the supplying manufacturer and the approved quantity
    for every SRN line, keyed by material id.
    """
    manufacturer_id: UUID
    lines: Mapping[UUID, tuple[int, int]]


@dataclass(frozen=True)
class SRNRejection:
    """Admin rejection with the reason shown to the retailer."""
    note: str


@dataclass(frozen=True)
class SRNItem:
    item_id: UUID
    material_id: UUID
    requested_packets: int
    requested_loose_units: int
    approved_packets: int
    approved_loose_units: int

    @property
    def fully_approved(self) -> bool:
        return (
            self.approved_packets == self.requested_packets
            and self.approved_loose_units == self.requested_loose_units
        )


@dataclass(frozen=True)
class SRN:
    """Read model of a stock requisition note."""
    srn_id: UUID
    srn_number: str
    retailer_id: UUID
    status: SRNStatus
    items: tuple[SRNItem, ...] = field(default_factory=tuple)
    manufacturer_id: UUID | None = None
    submitted_at: datetime | None = None
    adjudicated_at: datetime | None = None
    adjudicated_by: UUID | None = None
    rejection_note: str | None = None
    notes: str | None = None
