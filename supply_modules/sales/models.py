"""
Sales Domain Models (``supply_modules.sales.models``).

Responsibility
--------------
Frozen read models for retail sales, the commissions they earn, and
commission summaries.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from supply_kernel.domain.money import CommissionType


class CommissionStatus(str, Enum):
    """Commission lifecycle.  Must align with ``COMMISSION_WORKFLOW.states``."""
    PENDING = "PENDING"
    PAID = "PAID"


@dataclass(frozen=True)
class Sale:
    sale_id: UUID
    sale_number: str
    material_id: UUID
    retailer_id: UUID
    units_sold: int
    unit_price: Decimal
    total_amount: Decimal
    packets_opened: int
    created_at: datetime | None = None


@dataclass(frozen=True)
class Commission:
    commission_id: UUID
    sale_id: UUID
    retailer_id: UUID
    commission_type: CommissionType
    commission_rate: Decimal
    units_sold: int
    amount: Decimal
    status: CommissionStatus
    paid_at: datetime | None = None


@dataclass(frozen=True)
class SaleReceipt:
    """What ``record_sale`` returns: the sale and the commission it accrued."""
    sale: Sale
    commission: Commission


@dataclass(frozen=True)
class CommissionSummary:
    """Counts and amounts of commissions, split by status."""
    total_count: int
    pending_count: int
    paid_count: int
    total_amount: Decimal
    pending_amount: Decimal
    paid_amount: Decimal
