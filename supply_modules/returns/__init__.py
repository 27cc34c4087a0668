"""
Returns Module (``supply_modules.returns``).

Responsibility
--------------
Retailer returns to a manufacturer: raised with a reason, optionally
reviewed, then resolved by an admin.  A restock resolution returns the
goods to the manufacturer's stock.
"""

from supply_modules.returns.models import (
    Return,
    ReturnItem,
    ReturnLine,
    ReturnReason,
    ReturnStatus,
)
from supply_modules.returns.service import ReturnService
from supply_modules.returns.workflows import RETURN_WORKFLOW

__all__ = [
    "RETURN_WORKFLOW",
    "Return",
    "ReturnItem",
    "ReturnLine",
    "ReturnReason",
    "ReturnService",
    "ReturnStatus",
]
