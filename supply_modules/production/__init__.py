"""
Production Module (``supply_modules.production``).

Responsibility
--------------
Records manufactured batches: allocates a BATCH number, adds the stock to
the manufacturer ledger, and locks the material's HSN code and GST rate.

Architecture position
---------------------
**Modules layer** -- service facade over the kernel ManufacturerLedger,
MaterialService, and SequenceService.
"""

from supply_modules.production.models import ProductionBatch
from supply_modules.production.service import ProductionService

__all__ = ["ProductionBatch", "ProductionService"]
