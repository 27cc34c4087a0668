"""
Supply Kernel

An append-only inventory ledger for a two-location supply chain with:
- Exact, policy-driven money arithmetic
- Row-locked quantity reservation (blocking) and release
- Collision-free daily document numbering
- Full auditability via the inventory transaction log
"""

__version__ = "0.1.0"
