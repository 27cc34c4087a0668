"""
Returns Module Service (``supply_modules.returns.service``).

Responsibility
--------------
Retailers raise returns against a manufacturer; admins review and resolve
them.  A restock resolution puts the goods back into the manufacturer's
stock.

Architecture position
---------------------
**Modules layer** -- ``ReturnService`` is the sole public entry point.
Restocking is delegated to the kernel ``ManufacturerLedger``.

Invariants enforced
-------------------
* Status transitions follow ``RETURN_WORKFLOW``.
* Only APPROVED_RESTOCK changes inventory, and it restocks every line in
  the same transaction as the status change.

Failure modes
-------------
* ForbiddenError -- wrong role, or a GRN that belongs to another retailer.
* InvalidArgumentError -- bad manufacturer, lines, or resolution.
* InvalidStateError -- action illegal from the current status.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import ForbiddenError, InvalidArgumentError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.selectors.party_selector import PartySelector
from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import NotificationType, Notifier
from supply_kernel.services.party_service import PartyService
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import load, lock_for_update, use_case
from supply_modules.dispatch.orm import GRNModel
from supply_modules.returns.models import Return, ReturnLine, ReturnReason, ReturnStatus
from supply_modules.returns.orm import ReturnItemModel, ReturnModel
from supply_modules.returns.workflows import RETURN_WORKFLOW

logger = get_logger("modules.returns.service")


class ReturnService:
    """Return use cases: raise, review, resolve."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        sequences: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._sequences = sequences or SequenceService(session, self._clock)
        self._ledger = ManufacturerLedger(session)
        self._materials = MaterialService(session)
        self._parties = PartyService(session)
        self._party_selector = PartySelector(session)

    def create(
        self,
        actor: Actor,
        manufacturer_id: UUID,
        reason: ReturnReason,
        lines: Iterable[ReturnLine],
        grn_id: UUID | None = None,
        reason_details: str | None = None,
    ) -> Return:
        """
        Raise a return.

        Preconditions:
            - actor is a RETAILER.
            - manufacturer active with the MANUFACTURER role.
            - grn_id, when given, is one of the actor's GRNs.
            - At least one line, no material twice, every material exists.
        Postconditions:
            - RAISED return with a RET number; admins and the manufacturer
              notified.
        """
        require_role(actor, Role.RETAILER)
        reason = ReturnReason(reason)
        lines = list(lines)
        if not lines:
            raise InvalidArgumentError("lines", "at least one line is required")
        if len({line.material_id for line in lines}) != len(lines):
            raise InvalidArgumentError("lines", "a material may appear only once")

        with use_case(self._session, actor, self._notifier, "returns.create") as outbox:
            self._parties.require_active_role(manufacturer_id, Role.MANUFACTURER, "manufacturer_id")
            if grn_id is not None:
                grn = load(self._session, GRNModel, grn_id, "GRN")
                if grn.retailer_id != actor.actor_id:
                    raise ForbiddenError(str(actor.actor_id), "GRN belongs to another retailer")
            for line in lines:
                self._materials.get(line.material_id)

            ret = ReturnModel(
                return_number=self._sequences.next_number(SequenceService.RETURN),
                retailer_id=actor.actor_id,
                manufacturer_id=manufacturer_id,
                grn_id=grn_id,
                reason=reason.value,
                reason_details=reason_details,
                status=RETURN_WORKFLOW.initial_state,
                created_by_id=actor.actor_id,
            )
            for index, line in enumerate(lines, start=1):
                ret.items.append(
                    ReturnItemModel(
                        line_number=index,
                        material_id=line.material_id,
                        packets=line.packets,
                        loose_units=line.loose_units,
                        created_by_id=actor.actor_id,
                    )
                )
            self._session.add(ret)
            self._session.flush()
            LogContext.document("Return", ret.id)

            outbox.add(
                [*self._party_selector.active_ids_by_role(Role.ADMIN), manufacturer_id],
                NotificationType.RETURN_RAISED,
                "Return raised",
                f"Return {ret.return_number} raised: {reason.value}",
                ret.id,
            )
            logger.info(
                "return_raised",
                extra={
                    "return_id": str(ret.id),
                    "return_number": ret.return_number,
                    "reason": reason.value,
                    "line_count": len(lines),
                },
            )
            result = ret.to_dto()
        return result

    def mark_under_review(self, actor: Actor, return_id: UUID) -> Return:
        """RAISED -> UNDER_REVIEW.  ADMIN only."""
        require_role(actor, Role.ADMIN)
        with use_case(self._session, actor, self._notifier, "returns.mark_under_review"):
            ret = lock_for_update(self._session, ReturnModel, return_id, "Return")
            RETURN_WORKFLOW.require(ret.id, ret.status, ReturnStatus.UNDER_REVIEW.value, "review")
            ret.status = ReturnStatus.UNDER_REVIEW.value
            ret.updated_by_id = actor.actor_id
            self._session.flush()
            logger.info(
                "return_under_review",
                extra={"return_id": str(ret.id), "return_number": ret.return_number},
            )
            result = ret.to_dto()
        return result

    def resolve(
        self,
        actor: Actor,
        return_id: UUID,
        resolution: ReturnStatus,
        notes: str | None = None,
    ) -> Return:
        """
        Close a return with a terminal status.

        APPROVED_RESTOCK adds every line back to the manufacturer's stock.
        APPROVED_REPLACE and REJECTED have no inventory effect.

        Raises:
            InvalidArgumentError: resolution is not a terminal status.
            InvalidStateError: return already resolved.
        """
        require_role(actor, Role.ADMIN)
        resolution = ReturnStatus(resolution)
        if not resolution.is_resolution:
            raise InvalidArgumentError(
                "resolution", "must be APPROVED_RESTOCK, APPROVED_REPLACE, or REJECTED",
            )

        with use_case(self._session, actor, self._notifier, "returns.resolve") as outbox:
            ret = lock_for_update(self._session, ReturnModel, return_id, "Return")
            RETURN_WORKFLOW.require(ret.id, ret.status, resolution.value, "resolve")

            if resolution == ReturnStatus.APPROVED_RESTOCK:
                for item in sorted(ret.items, key=lambda i: i.material_id):
                    self._ledger.restock_from_return(
                        material_id=item.material_id,
                        manufacturer_id=ret.manufacturer_id,
                        packets=item.packets,
                        loose_units=item.loose_units,
                        actor_id=actor.actor_id,
                        return_id=ret.id,
                    )

            ret.status = resolution.value
            ret.resolved_at = self._clock.now()
            ret.resolved_by = actor.actor_id
            ret.resolution_notes = notes
            ret.updated_by_id = actor.actor_id
            self._session.flush()

            outbox.add(
                [ret.retailer_id],
                NotificationType.RETURN_RESOLVED,
                "Return resolved",
                f"Return {ret.return_number} resolved: {resolution.value}",
                ret.id,
            )
            logger.info(
                "return_resolved",
                extra={
                    "return_id": str(ret.id),
                    "return_number": ret.return_number,
                    "resolution": resolution.value,
                },
            )
            result = ret.to_dto()
        return result

    def get(self, return_id: UUID) -> Return:
        return load(self._session, ReturnModel, return_id, "Return").to_dto()

    def list_for_retailer(self, retailer_id: UUID) -> list[Return]:
        rows = self._session.execute(
            select(ReturnModel)
            .where(ReturnModel.retailer_id == retailer_id)
            .order_by(ReturnModel.return_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def list_for_manufacturer(self, manufacturer_id: UUID, status: ReturnStatus | None = None) -> list[Return]:
        stmt = select(ReturnModel).where(ReturnModel.manufacturer_id == manufacturer_id)
        if status is not None:
            stmt = stmt.where(ReturnModel.status == ReturnStatus(status).value)
        rows = self._session.execute(stmt.order_by(ReturnModel.return_number)).scalars().all()
        return [row.to_dto() for row in rows]

    def list_all(self, status: ReturnStatus | None = None) -> list[Return]:
        stmt = select(ReturnModel)
        if status is not None:
            stmt = stmt.where(ReturnModel.status == ReturnStatus(status).value)
        rows = self._session.execute(stmt.order_by(ReturnModel.return_number)).scalars().all()
        return [row.to_dto() for row in rows]

    def pending_count(self) -> int:
        """Returns not yet resolved: RAISED or UNDER_REVIEW."""
        open_states = [s.value for s in ReturnStatus if not s.is_resolution]
        return self._session.execute(
            select(func.count(ReturnModel.id)).where(ReturnModel.status.in_(open_states))
        ).scalar_one()
