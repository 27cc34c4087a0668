"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Two kinds of records in this system must never change once written:

  - The inventory transaction log.  Ledger balances are only trustworthy if
    they can be re-derived by summing an append-only log.
  - Invoices.  An invoice is a financial snapshot; there is no update
    operation, and the ORM must not allow one to be improvised.

Material rows are partially frozen: units_per_packet never changes, and
hsn_code / gst_rate stop changing once the first production batch has been
recorded (has_production = True).

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

If a check fails, the flush is aborted and the caller's transaction()
scope rolls back.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When Immutable                      | Registered by
------------------------|-------------------------------------|--------------------------
InventoryTransaction    | ALWAYS (from creation)              | register_immutability_listeners
Material                | units_per_packet always;            | register_immutability_listeners
                        | hsn_code/gst_rate after production  |
Invoice / InvoiceItem   | ALWAYS (from creation)              | protect_append_only (modules)

===============================================================================
USAGE
===============================================================================

    from supply_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Modules protect their own append-only models with ``protect_append_only``.

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from supply_kernel.exceptions import ImmutabilityViolationError
from supply_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Audit metadata may still be touched on otherwise frozen rows
_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

MATERIAL_PRODUCTION_LOCKED_FIELDS = frozenset({"hsn_code", "gst_rate"})

# model class -> (update listener, delete listener)
_registered: dict[type, tuple] = {}


def _changed_fields(target) -> set[str]:
    from sqlalchemy import inspect

    state = inspect(target)
    changed = set()
    for attr in state.mapper.column_attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if get_history(target, attr.key).has_changes():
            changed.add(attr.key)
    return changed


def _block(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def protect_append_only(model_cls: type, entity_type: str) -> None:
    """
    Make ``model_cls`` append-only: any content UPDATE or any DELETE raises.

    Idempotent per model class.
    """
    if model_cls in _registered:
        return

    def _on_update(mapper, connection, target):
        if _changed_fields(target):
            _block(entity_type, target, "UPDATE", f"{entity_type} records are immutable")

    def _on_delete(mapper, connection, target):
        _block(entity_type, target, "DELETE", f"{entity_type} records cannot be deleted")

    event.listen(model_cls, "before_update", _on_update)
    event.listen(model_cls, "before_delete", _on_delete)
    _registered[model_cls] = (_on_update, _on_delete)


def _check_material_immutability(mapper, connection, target):
    """
    units_per_packet is fixed at creation.  hsn_code and gst_rate are fixed
    once a production batch exists.  The flip of has_production itself in the
    same flush is allowed; values already locked before that flush are not.
    """
    changed = _changed_fields(target)
    if "units_per_packet" in changed:
        _block("Material", target, "UPDATE", "units_per_packet is immutable")

    locked_changes = changed & MATERIAL_PRODUCTION_LOCKED_FIELDS
    if not locked_changes:
        return
    history = get_history(target, "has_production")
    had_production = bool(history.deleted[0]) if history.deleted else bool(target.has_production)
    if had_production:
        _block(
            "Material",
            target,
            "UPDATE",
            f"{sorted(locked_changes)} locked after first production",
        )


def _check_material_delete(mapper, connection, target):
    _block("Material", target, "DELETE", "materials are deactivated, never deleted")


def register_immutability_listeners():
    """
    Register kernel immutability listeners.

    Call after models are imported and before any database work.  Idempotent.
    """
    from supply_kernel.models.inventory import InventoryTransaction
    from supply_kernel.models.material import Material

    protect_append_only(InventoryTransaction, "InventoryTransaction")

    if Material not in _registered:
        event.listen(Material, "before_update", _check_material_immutability)
        event.listen(Material, "before_delete", _check_material_delete)
        _registered[Material] = (_check_material_immutability, _check_material_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove every immutability listener, kernel and module alike.

    WARNING: Only use this in tests that must violate the rules on purpose.
    """
    for model_cls, (on_update, on_delete) in list(_registered.items()):
        _safe_remove_listener(model_cls, "before_update", on_update)
        _safe_remove_listener(model_cls, "before_delete", on_delete)
        del _registered[model_cls]
