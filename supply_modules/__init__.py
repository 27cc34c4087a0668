"""
Supply Modules.

Document workflows layered over the supply kernel.  Each module contains:
- Domain models (frozen read models and request values)
- Workflows (state machines)
- ORM models (persistence)
- A service facade (the use cases, one transaction each)

Modules:
- production: manufacturer batches
- srn: stock requisition notes
- dispatch: dispatch orders and goods received notes
- invoice: tax invoices for confirmed GRNs
- sales: retail sales and commissions
- returns: retailer returns and restocking
"""
