"""
Sales Module (``supply_modules.sales``).

Responsibility
--------------
Retail sales of loose units (opening packets as needed) and the
commissions each sale accrues for the retailer.
"""

from supply_modules.sales.models import (
    Commission,
    CommissionStatus,
    CommissionSummary,
    Sale,
    SaleReceipt,
)
from supply_modules.sales.service import CommissionService, SaleService
from supply_modules.sales.workflows import COMMISSION_WORKFLOW

__all__ = [
    "COMMISSION_WORKFLOW",
    "Commission",
    "CommissionService",
    "CommissionStatus",
    "CommissionSummary",
    "Sale",
    "SaleReceipt",
    "SaleService",
]
