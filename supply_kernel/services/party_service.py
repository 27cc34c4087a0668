"""
Service layer for Party operations.

Manages admins, manufacturers, and retailers, and the assignments that
decide which manufacturers may supply which retailer.

Returns PartyInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from sqlalchemy import select

from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from supply_kernel.logging_config import get_logger
from supply_kernel.models.party import Party, RetailerAssignment
from supply_kernel.services.base import BaseService

logger = get_logger("services.party")


@dataclass(frozen=True)
class PartyInfo:
    """Immutable DTO for party data."""

    id: UUID
    party_code: str
    name: str
    role: Role
    is_active: bool

    def as_actor(self) -> Actor:
        return Actor(actor_id=self.id, role=self.role)


class PartyService(BaseService[Party]):
    """
    Service for managing parties and retailer assignments.

    All public methods return PartyInfo DTOs or plain values, never ORM
    entities.
    """

    def _to_dto(self, party: Party) -> PartyInfo:
        return PartyInfo(
            id=party.id,
            party_code=party.party_code,
            name=party.name,
            role=party.role_enum,
            is_active=party.is_active,
        )

    def _get_by_id(self, party_id: UUID) -> Party:
        party = self.session.get(Party, party_id)
        if party is None:
            raise NotFoundError("Party", str(party_id))
        return party

    def get_by_id(self, party_id: UUID) -> PartyInfo:
        """
        Get party by ID.

        Raises:
            NotFoundError: If party doesn't exist.
        """
        return self._to_dto(self._get_by_id(party_id))

    def register(
        self,
        party_code: str,
        name: str,
        role: Role | str,
        created_by_id: UUID | None = None,
    ) -> PartyInfo:
        """
        Register a party in exactly one role.

        ``created_by_id`` defaults to the new party itself (self-registration).

        Raises:
            ConflictError: party_code already taken.
            InvalidArgumentError: unknown role.
        """
        try:
            role = Role(role)
        except ValueError as exc:
            raise InvalidArgumentError("role", f"unknown role {role!r}") from exc

        existing = self.session.execute(
            select(Party.id).where(Party.party_code == party_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise ConflictError("Party", party_code, "party_code already exists")

        party_id = uuid4()
        party = Party(
            id=party_id,
            party_code=party_code,
            name=name,
            role=role.value,
            is_active=True,
            created_by_id=created_by_id or party_id,
        )
        self.session.add(party)
        self.session.flush()
        logger.info(
            "party_registered",
            extra={"party_id": str(party_id), "party_code": party_code, "role": role.value},
        )
        return self._to_dto(party)

    def deactivate(self, actor: Actor, party_id: UUID) -> PartyInfo:
        require_role(actor, Role.ADMIN)
        party = self._get_by_id(party_id)
        party.is_active = False
        party.updated_by_id = actor.actor_id
        self.session.flush()
        logger.info("party_deactivated", extra={"party_id": str(party_id)})
        return self._to_dto(party)

    def require_active_role(self, party_id: UUID, role: Role, field: str) -> PartyInfo:
        """
        The party must exist, be active, and hold ``role``.

        Raises:
            InvalidArgumentError: Missing, inactive, or wrong role.
        """
        party = self.session.get(Party, party_id)
        if party is None:
            raise InvalidArgumentError(field, f"party {party_id} does not exist")
        if not party.is_active:
            raise InvalidArgumentError(field, f"party {party.party_code} is inactive")
        if party.role != role.value:
            raise InvalidArgumentError(field, f"party {party.party_code} is not a {role.value}")
        return self._to_dto(party)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def _find_assignment(self, retailer_id: UUID, manufacturer_id: UUID) -> RetailerAssignment | None:
        return self.session.execute(
            select(RetailerAssignment).where(
                RetailerAssignment.retailer_id == retailer_id,
                RetailerAssignment.manufacturer_id == manufacturer_id,
            )
        ).scalar_one_or_none()

    def assign_retailer(self, actor: Actor, retailer_id: UUID, manufacturer_id: UUID) -> None:
        """
        Allow ``manufacturer_id`` to supply ``retailer_id``.

        Idempotent; an inactive pair is reactivated.
        """
        require_role(actor, Role.ADMIN)
        self.require_active_role(retailer_id, Role.RETAILER, "retailer_id")
        self.require_active_role(manufacturer_id, Role.MANUFACTURER, "manufacturer_id")

        assignment = self._find_assignment(retailer_id, manufacturer_id)
        if assignment is None:
            assignment = RetailerAssignment(
                retailer_id=retailer_id,
                manufacturer_id=manufacturer_id,
                is_active=True,
                created_by_id=actor.actor_id,
            )
            self.session.add(assignment)
        elif not assignment.is_active:
            assignment.is_active = True
            assignment.updated_by_id = actor.actor_id
        self.session.flush()
        logger.info(
            "retailer_assigned",
            extra={"retailer_id": str(retailer_id), "manufacturer_id": str(manufacturer_id)},
        )

    def unassign(self, actor: Actor, retailer_id: UUID, manufacturer_id: UUID) -> None:
        require_role(actor, Role.ADMIN)
        assignment = self._find_assignment(retailer_id, manufacturer_id)
        if assignment is None:
            raise NotFoundError("RetailerAssignment", f"{retailer_id}/{manufacturer_id}")
        assignment.is_active = False
        assignment.updated_by_id = actor.actor_id
        self.session.flush()
        logger.info(
            "retailer_unassigned",
            extra={"retailer_id": str(retailer_id), "manufacturer_id": str(manufacturer_id)},
        )

    def is_assigned(self, retailer_id: UUID, manufacturer_id: UUID) -> bool:
        assignment = self._find_assignment(retailer_id, manufacturer_id)
        return assignment is not None and assignment.is_active
