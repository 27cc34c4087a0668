"""
SRN Module Service (``supply_modules.srn.service``).

Responsibility
--------------
Orchestrates the stock requisition lifecycle: a retailer drafts and
submits a request, an admin approves it (fully or partially, binding the
supplying manufacturer and blocking its stock) or rejects it.

Architecture position
---------------------
**Modules layer** -- ``SRNService`` is the sole public entry point for SRN
operations.  Inventory effects are delegated to the kernel
``ManufacturerLedger``; numbering to ``SequenceService``.

Invariants enforced
-------------------
* Every status change is checked against ``SRN_WORKFLOW``.
* Approval blocks stock for every positive line in one transaction; any
  shortfall aborts the whole adjudication.
* The manufacturer is bound at adjudication and must be active and
  assigned to the SRN's retailer.
* Approved quantities never exceed requested ones.

Failure modes
-------------
* ForbiddenError -- wrong role or not the owning retailer.
* InvalidStateError -- action illegal from the current status.
* InvalidArgumentError / NotFoundError -- bad lines or references.
* InsufficientInventoryError -- approval larger than available stock.

Audit relevance
---------------
``srn_created``, ``srn_submitted``, and ``srn_adjudicated`` events carry the
SRN id, number, and resulting status.  Blocks appear in the inventory log
with reference type SRN.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_owner, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import InvalidArgumentError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.selectors.party_selector import PartySelector
from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import NotificationType, Notifier
from supply_kernel.services.party_service import PartyService
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import load, lock_for_update, use_case
from supply_modules.srn.models import (
    SRN,
    SRNApproval,
    SRNLineRequest,
    SRNRejection,
    SRNStatus,
)
from supply_modules.srn.orm import SRNItemModel, SRNModel
from supply_modules.srn.workflows import SRN_WORKFLOW

logger = get_logger("modules.srn.service")


class SRNService:
    """
    Stock requisition use cases.

    Contract
    --------
    * Mutating methods take an ``Actor``, run in one transaction, and return
      the SRN read model.
    * Notifications are delivered through the injected ``Notifier`` after
      commit; delivery failures never undo the SRN change.
    """

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

    # =========================================================================
    # Retailer actions
    # =========================================================================

    def create(
        self,
        actor: Actor,
        lines: Iterable[SRNLineRequest],
        notes: str | None = None,
    ) -> SRN:
        """
        Draft a new SRN for the calling retailer.

        Preconditions:
            - actor is a RETAILER.
            - At least one line; no material twice; each line has
              packets > 0 or loose_units > 0.
            - Every material exists and is active.
        Postconditions:
            - SRN in DRAFT with an SRN-prefixed number.
        """
        require_role(actor, Role.RETAILER)
        lines = list(lines)
        if not lines:
            raise InvalidArgumentError("lines", "at least one line is required")
        seen: set[UUID] = set()
        for line in lines:
            if line.material_id in seen:
                raise InvalidArgumentError("lines", f"material {line.material_id} listed twice")
            seen.add(line.material_id)
            if line.packets == 0 and line.loose_units == 0:
                raise InvalidArgumentError("lines", "each line needs packets or loose units")

        with use_case(self._session, actor, self._notifier, "srn.create"):
            for line in lines:
                self._materials.require_active(line.material_id)

            srn = SRNModel(
                srn_number=self._sequences.next_number(SequenceService.SRN),
                retailer_id=actor.actor_id,
                status=SRN_WORKFLOW.initial_state,
                notes=notes,
                created_by_id=actor.actor_id,
            )
            for index, line in enumerate(lines, start=1):
                srn.items.append(
                    SRNItemModel(
                        line_number=index,
                        material_id=line.material_id,
                        requested_packets=line.packets,
                        requested_loose_units=line.loose_units,
                        approved_packets=0,
                        approved_loose_units=0,
                        created_by_id=actor.actor_id,
                    )
                )
            self._session.add(srn)
            self._session.flush()
            LogContext.document("SRN", srn.id)
            logger.info(
                "srn_created",
                extra={
                    "srn_id": str(srn.id),
                    "srn_number": srn.srn_number,
                    "line_count": len(lines),
                },
            )
            result = srn.to_dto()
        return result

    def submit(self, actor: Actor, srn_id: UUID) -> SRN:
        """
        DRAFT -> SUBMITTED; notifies every active admin.

        Raises:
            ForbiddenError: Not the owning retailer.
            InvalidStateError: SRN is not in DRAFT.
        """
        require_role(actor, Role.RETAILER)
        with use_case(self._session, actor, self._notifier, "srn.submit") as outbox:
            srn = lock_for_update(self._session, SRNModel, srn_id, "SRN")
            require_owner(actor, srn.retailer_id, "SRN")
            SRN_WORKFLOW.require(srn.id, srn.status, SRNStatus.SUBMITTED.value, "submit")

            srn.status = SRNStatus.SUBMITTED.value
            srn.submitted_at = self._clock.now()
            srn.updated_by_id = actor.actor_id
            self._session.flush()

            outbox.add(
                self._party_selector.active_ids_by_role(Role.ADMIN),
                NotificationType.SRN_SUBMITTED,
                "SRN submitted",
                f"SRN {srn.srn_number} is awaiting approval",
                srn.id,
            )
            logger.info(
                "srn_submitted",
                extra={"srn_id": str(srn.id), "srn_number": srn.srn_number},
            )
            result = srn.to_dto()
        return result

    # =========================================================================
    # Admin adjudication
    # =========================================================================

    def process_approval(
        self,
        actor: Actor,
        srn_id: UUID,
        decision: SRNApproval | SRNRejection,
    ) -> SRN:
        """
        Adjudicate a SUBMITTED SRN.

        Rejection:
            REJECTED with the note; no inventory effect.
        Approval:
            Binds the manufacturer, records approved quantities, blocks stock
            for every positive line, and sets APPROVED when every line was
            approved in full, PARTIAL otherwise.

        Raises:
            ForbiddenError: Actor is not ADMIN.
            InvalidStateError: SRN is not SUBMITTED.
            InvalidArgumentError: Bad manufacturer or approval lines.
            InsufficientInventoryError: A block exceeds available stock.
        """
        require_role(actor, Role.ADMIN)
        if not isinstance(decision, (SRNApproval, SRNRejection)):
            raise InvalidArgumentError("decision", "must be SRNApproval or SRNRejection")

        with use_case(self._session, actor, self._notifier, "srn.process_approval") as outbox:
            srn = lock_for_update(self._session, SRNModel, srn_id, "SRN")

            if isinstance(decision, SRNRejection):
                SRN_WORKFLOW.require(srn.id, srn.status, SRNStatus.REJECTED.value, "reject")
                srn.status = SRNStatus.REJECTED.value
                srn.rejection_note = decision.note
                self._stamp_adjudication(srn, actor)
                outbox.add(
                    [srn.retailer_id],
                    NotificationType.SRN_REJECTED,
                    "SRN rejected",
                    f"SRN {srn.srn_number} was rejected: {decision.note}",
                    srn.id,
                )
            else:
                target = self._apply_approval(srn, decision, actor)
                srn.status = target.value
                srn.manufacturer_id = decision.manufacturer_id
                self._stamp_adjudication(srn, actor)
                outbox.add(
                    [srn.retailer_id, decision.manufacturer_id],
                    NotificationType.SRN_APPROVED,
                    "SRN approved",
                    f"SRN {srn.srn_number} was {target.value.lower()}",
                    srn.id,
                )

            logger.info(
                "srn_adjudicated",
                extra={
                    "srn_id": str(srn.id),
                    "srn_number": srn.srn_number,
                    "status": srn.status,
                    "manufacturer_id": str(srn.manufacturer_id) if srn.manufacturer_id else None,
                },
            )
            result = srn.to_dto()
        return result

    def _stamp_adjudication(self, srn: SRNModel, actor: Actor) -> None:
        srn.adjudicated_at = self._clock.now()
        srn.adjudicated_by = actor.actor_id
        srn.updated_by_id = actor.actor_id
        self._session.flush()

    def _apply_approval(
        self,
        srn: SRNModel,
        decision: SRNApproval,
        actor: Actor,
    ) -> SRNStatus:
        # Validate the source state before anything else is checked
        if srn.status != SRNStatus.SUBMITTED.value:
            SRN_WORKFLOW.require(srn.id, srn.status, SRNStatus.APPROVED.value, "approve")

        self._parties.require_active_role(
            decision.manufacturer_id, Role.MANUFACTURER, "manufacturer_id",
        )
        if not self._parties.is_assigned(srn.retailer_id, decision.manufacturer_id):
            raise InvalidArgumentError(
                "manufacturer_id", "manufacturer is not assigned to this retailer",
            )

        item_materials = {item.material_id for item in srn.items}
        unknown = set(decision.lines) - item_materials
        if unknown:
            raise InvalidArgumentError("lines", f"material {sorted(map(str, unknown))[0]} is not on this SRN")

        approvals: list[tuple[SRNItemModel, int, int]] = []
        for item in srn.items:
            if item.material_id not in decision.lines:
                raise InvalidArgumentError("lines", f"no decision for material {item.material_id}")
            packets, loose = decision.lines[item.material_id]
            if packets < 0 or loose < 0:
                raise InvalidArgumentError("lines", "approved quantities must be >= 0")
            if packets > item.requested_packets or loose > item.requested_loose_units:
                raise InvalidArgumentError("lines", "approved quantity exceeds requested")
            approvals.append((item, packets, loose))

        if not any(packets > 0 or loose > 0 for _, packets, loose in approvals):
            raise InvalidArgumentError("lines", "at least one line must be approved")

        complete = True
        # Rows are locked in material order so concurrent approvals cannot
        # wait on each other in a cycle
        for item, packets, loose in sorted(approvals, key=lambda a: a[0].material_id):
            item.approved_packets = packets
            item.approved_loose_units = loose
            item.updated_by_id = actor.actor_id
            if packets != item.requested_packets or loose != item.requested_loose_units:
                complete = False
            if packets > 0 or loose > 0:
                self._ledger.block_for_dispatch(
                    material_id=item.material_id,
                    manufacturer_id=decision.manufacturer_id,
                    packets=packets,
                    loose_units=loose,
                    actor_id=actor.actor_id,
                    srn_id=srn.id,
                )

        target = SRNStatus.APPROVED if complete else SRNStatus.PARTIAL
        SRN_WORKFLOW.require(srn.id, srn.status, target.value, "approve")
        return target

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, srn_id: UUID) -> SRN:
        return load(self._session, SRNModel, srn_id, "SRN").to_dto()

    def list_for_retailer(self, retailer_id: UUID, status: SRNStatus | None = None) -> list[SRN]:
        stmt = select(SRNModel).where(SRNModel.retailer_id == retailer_id)
        if status is not None:
            stmt = stmt.where(SRNModel.status == SRNStatus(status).value)
        rows = self._session.execute(stmt.order_by(SRNModel.srn_number)).scalars().all()
        return [row.to_dto() for row in rows]

    def list_by_status(self, status: SRNStatus) -> list[SRN]:
        rows = self._session.execute(
            select(SRNModel)
            .where(SRNModel.status == SRNStatus(status).value)
            .order_by(SRNModel.srn_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def list_for_manufacturer(self, manufacturer_id: UUID, status: SRNStatus | None = None) -> list[SRN]:
        """SRNs approved against ``manufacturer_id``; undecided SRNs have no manufacturer yet."""
        stmt = select(SRNModel).where(SRNModel.manufacturer_id == manufacturer_id)
        if status is not None:
            stmt = stmt.where(SRNModel.status == SRNStatus(status).value)
        rows = self._session.execute(stmt.order_by(SRNModel.srn_number)).scalars().all()
        return [row.to_dto() for row in rows]

    def pending_count(self) -> int:
        """SRNs waiting for adjudication."""
        return self._session.execute(
            select(func.count(SRNModel.id)).where(SRNModel.status == SRNStatus.SUBMITTED.value)
        ).scalar_one()
