"""
Module ORM Registry (``supply_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definitions before tables are
created, and attach the module-level immutability listeners.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``supply_modules``
packages and from ``supply_kernel`` (allowed: modules -> kernel).
MUST NOT be imported by ``supply_kernel``.

Usage
-----
Entrypoints and ``tests/conftest.py`` call ``create_all_tables()``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``supply_modules.*.orm`` module.

    Kernel tables go first so module foreign keys (parties.id,
    materials.id) resolve.  Idempotent.
    """
    import supply_kernel.models  # noqa: F401
    import supply_kernel.services.sequence_service  # noqa: F401
    # fmt: off
    import supply_modules.production.orm  # noqa: F401
    import supply_modules.srn.orm  # noqa: F401
    import supply_modules.dispatch.orm  # noqa: F401
    import supply_modules.invoice.orm  # noqa: F401
    import supply_modules.sales.orm  # noqa: F401
    import supply_modules.returns.orm  # noqa: F401
    # fmt: on


def register_module_immutability() -> None:
    """Make invoices and invoice lines append-only.  Idempotent."""
    from supply_kernel.db.immutability import protect_append_only
    from supply_modules.invoice.orm import InvoiceItemModel, InvoiceModel

    protect_append_only(InvoiceModel, "Invoice")
    protect_append_only(InvoiceItemModel, "InvoiceItem")


def register_all_immutability() -> None:
    """Kernel listeners (inventory log, material) plus module listeners."""
    from supply_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()
    register_module_immutability()


def create_all_tables() -> None:
    """Create kernel + all module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from supply_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
