"""
Access -- capability checks invoked at the start of each use case.

Responsibility:
    Replaces framework route guards with an explicit actor value and two
    check functions.  Every service method that mutates state takes an
    ``Actor`` and calls ``require_role`` (and, for owned documents,
    ``require_owner``) before touching the session.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - ForbiddenError when the role or ownership check fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from supply_kernel.exceptions import ForbiddenError


class Role(str, Enum):
    """Actor roles.  Parties are registered with exactly one."""

    ADMIN = "ADMIN"
    MANUFACTURER = "MANUFACTURER"
    RETAILER = "RETAILER"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a use case."""

    actor_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_role(actor: Actor, *roles: Role) -> None:
    """Raise ForbiddenError unless ``actor.role`` is one of ``roles``."""
    if actor.role not in roles:
        raise ForbiddenError(
            actor_id=str(actor.actor_id),
            reason=f"role {actor.role.value} not in {sorted(r.value for r in roles)}",
        )


def require_owner(actor: Actor, owner_id: UUID | None, entity_type: str) -> None:
    """Raise ForbiddenError unless the actor is the document's owner."""
    if owner_id is None or actor.actor_id != owner_id:
        raise ForbiddenError(
            actor_id=str(actor.actor_id),
            reason=f"not the owner of this {entity_type}",
        )
