"""
Returns Domain Models (``supply_modules.returns.models``).

Responsibility
--------------
Frozen value objects for retailer returns: the reason codes, lifecycle
states, requested lines, and the read model returned by ``ReturnService``.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from supply_kernel.exceptions import InvalidArgumentError


class ReturnReason(str, Enum):
    DAMAGED_GOODS = "DAMAGED_GOODS"
    MISSING_UNITS = "MISSING_UNITS"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    WRONG_PRODUCT = "WRONG_PRODUCT"
    OTHER = "OTHER"


class ReturnStatus(str, Enum):
    """Return lifecycle.  Must align with ``RETURN_WORKFLOW.states``."""
    RAISED = "RAISED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED_RESTOCK = "APPROVED_RESTOCK"
    APPROVED_REPLACE = "APPROVED_REPLACE"
    REJECTED = "REJECTED"

    @property
    def is_resolution(self) -> bool:
        return self in _RESOLUTIONS


_RESOLUTIONS = frozenset({
    ReturnStatus.APPROVED_RESTOCK,
    ReturnStatus.APPROVED_REPLACE,
    ReturnStatus.REJECTED,
})


@dataclass(frozen=True)
class ReturnLine:
    """One material the retailer is sending back."""
    material_id: UUID
    packets: int = 0
    loose_units: int = 0

    def __post_init__(self) -> None:
        if self.packets < 0 or self.loose_units < 0:
            raise InvalidArgumentError("lines", "quantities must be >= 0")
        if self.packets == 0 and self.loose_units == 0:
            raise InvalidArgumentError("lines", "each line needs packets or loose units")


@dataclass(frozen=True)
class ReturnItem:
    item_id: UUID
    material_id: UUID
    packets: int
    loose_units: int


@dataclass(frozen=True)
class Return:
    """Read model of a return."""
    return_id: UUID
    return_number: str
    retailer_id: UUID
    manufacturer_id: UUID
    reason: ReturnReason
    status: ReturnStatus
    items: tuple[ReturnItem, ...] = field(default_factory=tuple)
    grn_id: UUID | None = None
    reason_details: str | None = None
    resolved_at: datetime | None = None
    resolved_by: UUID | None = None
    resolution_notes: str | None = None
