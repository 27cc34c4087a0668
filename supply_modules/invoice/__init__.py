"""
Invoice Module (``supply_modules.invoice``).

Responsibility
--------------
Immutable tax invoices generated from confirmed GRNs, with GST split into
CGST+SGST (intrastate) or IGST (interstate) at a blended invoice rate.
"""

from supply_modules.invoice.models import Invoice, InvoiceItem
from supply_modules.invoice.service import InvoiceService

__all__ = ["Invoice", "InvoiceItem", "InvoiceService"]
