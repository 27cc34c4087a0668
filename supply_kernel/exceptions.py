"""
Typed Exception Hierarchy for the Supply Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Inventory and order workflows fail for a small number of well-understood
reasons: an id does not exist, a document is in the wrong state, stock is
short, the caller is not allowed, or a uniqueness rule would be broken.
Callers (an HTTP adapter, a CLI, a test) must be able to tell these apart
without parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (attempted vs. available, ids, states)

Example:
    try:
        srn_service.process_approval(admin, srn_id, decision)
    except InsufficientInventoryError as e:
        return {
            "error": e.code,
            "requested_packets": e.requested_packets,
            "available_packets": e.available_packets,
        }

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SupplyKernelError (base)
    |
    +-- NotFoundError
    +-- InvalidArgumentError
    +-- ConflictError
    +-- InternalConsistencyError
    |
    +-- WorkflowError
    |   +-- InvalidStateError
    |
    +-- InventoryError
    |   +-- InsufficientInventoryError
    |   +-- InsufficientBlockedError
    |
    +-- AccessError
    |   +-- ForbiddenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                    | When Raised
------------------------|------------------------------------------------------
NOT_FOUND               | Entity id (or code) unknown
INVALID_ARGUMENT        | Malformed quantity / money / line set
CONFLICT                | Uniqueness violation (sq code, dispatch per SRN,
                        | invoice per GRN, batch ref per manufacturer)
INVALID_STATE           | Operation illegal for the document's current status
INSUFFICIENT_INVENTORY  | Available (full - blocked) stock below request
INSUFFICIENT_BLOCKED    | Blocked stock below dispatch/release request
FORBIDDEN               | Role or ownership mismatch
IMMUTABILITY_VIOLATION  | Update/delete of an append-only or frozen record
INTERNAL_CONSISTENCY    | Ledger arithmetic broke an invariant (a bug)

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception, not ValueError etc., so they
   are catchable as a group without mixing in programming errors.

2. ``code`` is a class attribute: static per type, usable without an
   instance.

3. InternalConsistencyError is never caught inside the library.  It marks
   a broken invariant, not a user mistake, and must abort loudly.

===============================================================================
"""


class SupplyKernelError(Exception):
    """
    Base exception for all supply kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SUPPLY_KERNEL_ERROR"


class NotFoundError(SupplyKernelError):
    """Entity with the given id (or code) does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class InvalidArgumentError(SupplyKernelError):
    """Input is malformed: negative quantity, zero divisor, empty line set."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class ConflictError(SupplyKernelError):
    """A uniqueness rule would be broken."""

    code: str = "CONFLICT"

    def __init__(self, entity_type: str, key: str, reason: str):
        self.entity_type = entity_type
        self.key = str(key)
        self.reason = reason
        super().__init__(f"{entity_type} conflict on {key}: {reason}")


class InternalConsistencyError(SupplyKernelError):
    """
    A ledger invariant was broken by the kernel's own arithmetic.

    This is a bug, not a user-facing error.  It is raised instead of
    clamping values and must never be swallowed.
    """

    code: str = "INTERNAL_CONSISTENCY"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Internal consistency violation ({invariant}): {detail}")


# Workflow exceptions


class WorkflowError(SupplyKernelError):
    """Base exception for document lifecycle errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidStateError(WorkflowError):
    """Operation is not legal from the document's current status."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        action: str,
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state {current_state}"
        )


# Inventory exceptions


class InventoryError(SupplyKernelError):
    """Base exception for quantity check failures."""

    code: str = "INVENTORY_ERROR"


class InsufficientInventoryError(InventoryError):
    """Available stock is below the requested quantity."""

    code: str = "INSUFFICIENT_INVENTORY"

    def __init__(
        self,
        material_id: str,
        location_id: str,
        requested_packets: int,
        requested_units: int,
        available_packets: int,
        available_units: int,
    ):
        self.material_id = str(material_id)
        self.location_id = str(location_id)
        self.requested_packets = requested_packets
        self.requested_units = requested_units
        self.available_packets = available_packets
        self.available_units = available_units
        super().__init__(
            f"Insufficient inventory for material {material_id} at {location_id}: "
            f"requested {requested_packets} packets / {requested_units} units, "
            f"available {available_packets} packets / {available_units} units"
        )


class InsufficientBlockedError(InventoryError):
    """Blocked (reserved) stock is below the quantity being dispatched or released."""

    code: str = "INSUFFICIENT_BLOCKED"

    def __init__(
        self,
        material_id: str,
        location_id: str,
        requested_packets: int,
        requested_units: int,
        blocked_packets: int,
        blocked_units: int,
    ):
        self.material_id = str(material_id)
        self.location_id = str(location_id)
        self.requested_packets = requested_packets
        self.requested_units = requested_units
        self.blocked_packets = blocked_packets
        self.blocked_units = blocked_units
        super().__init__(
            f"Insufficient blocked inventory for material {material_id} at {location_id}: "
            f"requested {requested_packets} packets / {requested_units} units, "
            f"blocked {blocked_packets} packets / {blocked_units} units"
        )


# Access exceptions


class AccessError(SupplyKernelError):
    """Base exception for capability check failures."""

    code: str = "ACCESS_ERROR"


class ForbiddenError(AccessError):
    """Actor lacks the role, or does not own the document."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_id: str, reason: str):
        self.actor_id = str(actor_id)
        self.reason = reason
        super().__init__(f"Actor {actor_id} forbidden: {reason}")


# Immutability exceptions


class ImmutabilityError(SupplyKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    InventoryTransaction rows are append-only; Invoice and InvoiceItem are
    frozen at creation; Material.units_per_packet never changes.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
