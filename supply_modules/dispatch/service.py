"""
Dispatch Module Service (``supply_modules.dispatch.service``).

Responsibility
--------------
Turns an approved SRN into a priced dispatch order, ships it out of the
manufacturer's blocked stock, and receives it into the retailer's stock
when the retailer confirms the goods received note.

Architecture position
---------------------
**Modules layer** -- ``DispatchService`` and ``GRNService`` are the public
entry points.  Inventory effects go through the kernel ledgers; prices
through ``MoneyEngine``.

Invariants enforced
-------------------
* One dispatch per SRN, one GRN per dispatch.
* Line prices, HSN codes, and GST rates are frozen at dispatch creation.
* Executing a dispatch draws every line from blocked stock or nothing.
* Confirming a GRN receives every line or nothing; discrepancies between
  expected and received quantities are recorded, not rejected.

Failure modes
-------------
* ForbiddenError -- caller is not the admin, the bound manufacturer, or
  the owning retailer.
* InvalidStateError -- SRN, dispatch, or GRN in the wrong status.
* ConflictError -- dispatch already exists for the SRN.
* InsufficientBlockedError -- blocked stock no longer covers a line.

Audit relevance
---------------
``dispatch_created``, ``dispatch_executed``, and ``grn_confirmed`` events
plus DISPATCH_EXECUTE / GRN_RECEIVE rows in the inventory log.
"""

from __future__ import annotations

from collections.abc import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_owner, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.money import MoneyEngine
from supply_kernel.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.selectors.party_selector import PartySelector
from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import NotificationType, Notifier
from supply_kernel.services.retailer_ledger import RetailerLedger
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import load, lock_for_update, use_case
from supply_modules.dispatch.models import GRN, DispatchOrder, DispatchStatus, GRNStatus
from supply_modules.dispatch.orm import (
    DispatchItemModel,
    DispatchOrderModel,
    GRNItemModel,
    GRNModel,
)
from supply_modules.dispatch.workflows import DISPATCH_WORKFLOW, GRN_WORKFLOW
from supply_modules.srn.models import SRNStatus
from supply_modules.srn.orm import SRNModel

logger = get_logger("modules.dispatch.service")

_DISPATCHABLE = frozenset({SRNStatus.APPROVED.value, SRNStatus.PARTIAL.value})


def _require_admin_or_manufacturer(actor: Actor, manufacturer_id: UUID | None) -> None:
    if actor.is_admin:
        return
    require_role(actor, Role.MANUFACTURER)
    if manufacturer_id is None or actor.actor_id != manufacturer_id:
        raise ForbiddenError(str(actor.actor_id), "not the manufacturer bound to this document")


class DispatchService:
    """
    Dispatch order use cases.

    Contract
    --------
    * ``create_dispatch`` prices the approved SRN lines and opens a PENDING
      GRN placeholder with the expected quantities.
    * ``execute`` ships the blocked stock and moves the dispatch IN_TRANSIT.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        sequences: SequenceService | None = None,
        money: MoneyEngine | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._sequences = sequences or SequenceService(session, self._clock)
        self._money = money or MoneyEngine()
        self._ledger = ManufacturerLedger(session)
        self._materials = MaterialService(session, self._money)
        self._party_selector = PartySelector(session)

    def create_dispatch(self, actor: Actor, srn_id: UUID) -> DispatchOrder:
        """
        Create the dispatch order for an approved SRN.

        Preconditions:
            - SRN is APPROVED or PARTIAL and has no dispatch yet.
            - actor is ADMIN or the SRN's bound manufacturer.
        Postconditions:
            - PENDING dispatch with one priced line per positively approved
              SRN line; PENDING GRN with matching expected quantities.
        Raises:
            ForbiddenError, InvalidStateError, ConflictError, NotFoundError.
        """
        with use_case(self._session, actor, self._notifier, "dispatch.create") as outbox:
            srn = lock_for_update(self._session, SRNModel, srn_id, "SRN")
            _require_admin_or_manufacturer(actor, srn.manufacturer_id)
            if srn.status not in _DISPATCHABLE:
                raise InvalidStateError("SRN", str(srn.id), srn.status, "create_dispatch")

            existing = self._session.execute(
                select(DispatchOrderModel.id).where(DispatchOrderModel.srn_id == srn.id)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError("DispatchOrder", srn.srn_number, "SRN already has a dispatch")

            dispatch = DispatchOrderModel(
                dispatch_number=self._sequences.next_number(SequenceService.DISPATCH),
                srn_id=srn.id,
                manufacturer_id=srn.manufacturer_id,
                retailer_id=srn.retailer_id,
                status=DISPATCH_WORKFLOW.initial_state,
                subtotal=self._money.zero(),
                created_by_id=actor.actor_id,
            )
            grn = GRNModel(
                grn_number=self._sequences.next_number(SequenceService.GRN),
                retailer_id=srn.retailer_id,
                status=GRN_WORKFLOW.initial_state,
                created_by_id=actor.actor_id,
            )

            line_totals = []
            line_number = 0
            for item in srn.items:
                if item.approved_packets == 0 and item.approved_loose_units == 0:
                    continue
                line_number += 1
                material = self._materials.get(item.material_id)
                unit_price = self._money.unit_price(
                    material.mrp_per_packet, material.units_per_packet,
                )
                line_total = self._money.add(
                    self._money.line_total(material.mrp_per_packet, item.approved_packets),
                    self._money.line_total(unit_price, item.approved_loose_units),
                )
                line_totals.append(line_total)
                dispatch.items.append(
                    DispatchItemModel(
                        line_number=line_number,
                        material_id=item.material_id,
                        packets=item.approved_packets,
                        loose_units=item.approved_loose_units,
                        unit_price=unit_price,
                        mrp_per_packet=self._money.to_money(material.mrp_per_packet),
                        line_total=line_total,
                        hsn_code=material.hsn_code,
                        gst_rate=material.gst_rate,
                        created_by_id=actor.actor_id,
                    )
                )
                grn.items.append(
                    GRNItemModel(
                        line_number=line_number,
                        material_id=item.material_id,
                        expected_packets=item.approved_packets,
                        expected_loose_units=item.approved_loose_units,
                        created_by_id=actor.actor_id,
                    )
                )

            dispatch.subtotal = self._money.sum(line_totals)
            self._session.add(dispatch)
            self._session.flush()
            LogContext.document("DispatchOrder", dispatch.id)
            grn.dispatch_id = dispatch.id
            self._session.add(grn)
            self._session.flush()

            outbox.add(
                self._party_selector.active_ids_by_role(Role.ADMIN),
                NotificationType.DISPATCH_CREATED,
                "Dispatch created",
                f"Dispatch {dispatch.dispatch_number} created for SRN {srn.srn_number}",
                dispatch.id,
            )
            logger.info(
                "dispatch_created",
                extra={
                    "dispatch_id": str(dispatch.id),
                    "dispatch_number": dispatch.dispatch_number,
                    "srn_id": str(srn.id),
                    "grn_number": grn.grn_number,
                    "line_count": line_number,
                    "subtotal": self._money.to_storage_string(dispatch.subtotal),
                },
            )
            result = dispatch.to_dto()
        return result

    def execute(self, actor: Actor, dispatch_id: UUID) -> DispatchOrder:
        """
        Ship a PENDING dispatch.

        Postconditions:
            - Every line drawn from the manufacturer's blocked stock.
            - status IN_TRANSIT; executed_at set; retailer notified.
        Raises:
            InsufficientBlockedError: A line is no longer covered; nothing
                is shipped.
        """
        with use_case(self._session, actor, self._notifier, "dispatch.execute") as outbox:
            dispatch = lock_for_update(self._session, DispatchOrderModel, dispatch_id, "DispatchOrder")
            _require_admin_or_manufacturer(actor, dispatch.manufacturer_id)
            DISPATCH_WORKFLOW.require(
                dispatch.id, dispatch.status, DispatchStatus.IN_TRANSIT.value, "execute",
            )

            for item in sorted(dispatch.items, key=lambda i: i.material_id):
                self._ledger.execute_dispatch(
                    material_id=item.material_id,
                    manufacturer_id=dispatch.manufacturer_id,
                    packets=item.packets,
                    loose_units=item.loose_units,
                    actor_id=actor.actor_id,
                    dispatch_id=dispatch.id,
                )

            dispatch.status = DispatchStatus.IN_TRANSIT.value
            dispatch.executed_at = self._clock.now()
            dispatch.updated_by_id = actor.actor_id
            self._session.flush()

            outbox.add(
                [dispatch.retailer_id],
                NotificationType.DISPATCH_EXECUTED,
                "Dispatch in transit",
                f"Dispatch {dispatch.dispatch_number} is on its way",
                dispatch.id,
            )
            logger.info(
                "dispatch_executed",
                extra={
                    "dispatch_id": str(dispatch.id),
                    "dispatch_number": dispatch.dispatch_number,
                    "line_count": len(dispatch.items),
                },
            )
            result = dispatch.to_dto()
        return result

    def get_dispatch(self, dispatch_id: UUID) -> DispatchOrder:
        return load(self._session, DispatchOrderModel, dispatch_id, "DispatchOrder").to_dto()

    def get_dispatch_for_srn(self, srn_id: UUID) -> DispatchOrder | None:
        row = self._session.execute(
            select(DispatchOrderModel).where(DispatchOrderModel.srn_id == srn_id)
        ).scalar_one_or_none()
        return row.to_dto() if row else None

    def list_for_manufacturer(
        self, manufacturer_id: UUID, status: DispatchStatus | None = None,
    ) -> list[DispatchOrder]:
        stmt = select(DispatchOrderModel).where(DispatchOrderModel.manufacturer_id == manufacturer_id)
        if status is not None:
            stmt = stmt.where(DispatchOrderModel.status == DispatchStatus(status).value)
        rows = self._session.execute(stmt.order_by(DispatchOrderModel.dispatch_number)).scalars().all()
        return [row.to_dto() for row in rows]

    def list_all(self, status: DispatchStatus | None = None) -> list[DispatchOrder]:
        stmt = select(DispatchOrderModel)
        if status is not None:
            stmt = stmt.where(DispatchOrderModel.status == DispatchStatus(status).value)
        rows = self._session.execute(stmt.order_by(DispatchOrderModel.dispatch_number)).scalars().all()
        return [row.to_dto() for row in rows]


class GRNService:
    """
    Goods received note use cases.

    Contract
    --------
    ``confirm`` records what actually arrived, adds it to the retailer's
    stock, and closes both the GRN and its dispatch.
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
        self._ledger = RetailerLedger(session)
        self._party_selector = PartySelector(session)

    def confirm(
        self,
        actor: Actor,
        grn_id: UUID,
        received: Mapping[UUID, tuple[int, int]],
        notes: str | None = None,
    ) -> GRN:
        """
        Confirm receipt of a dispatch.

        Preconditions:
            - actor is the GRN's retailer.
            - GRN is PENDING and its dispatch IN_TRANSIT.
            - ``received`` has (packets, loose_units) for every expected
              material and nothing else; quantities >= 0.
        Postconditions:
            - Received quantities stored and added to retailer stock.
            - GRN CONFIRMED, dispatch DELIVERED; admins notified.
        """
        require_role(actor, Role.RETAILER)
        with use_case(self._session, actor, self._notifier, "grn.confirm") as outbox:
            grn = lock_for_update(self._session, GRNModel, grn_id, "GRN")
            require_owner(actor, grn.retailer_id, "GRN")
            GRN_WORKFLOW.require(grn.id, grn.status, GRNStatus.CONFIRMED.value, "confirm")

            dispatch = lock_for_update(
                self._session, DispatchOrderModel, grn.dispatch_id, "DispatchOrder",
            )
            if dispatch.status != DispatchStatus.IN_TRANSIT.value:
                raise InvalidStateError(
                    "DispatchOrder", str(dispatch.id), dispatch.status, "confirm_grn",
                )

            expected = {item.material_id for item in grn.items}
            unknown = set(received) - expected
            if unknown:
                raise InvalidArgumentError(
                    "received", f"material {sorted(map(str, unknown))[0]} was not dispatched",
                )
            for item in grn.items:
                if item.material_id not in received:
                    raise InvalidArgumentError(
                        "received", f"no quantity for material {item.material_id}",
                    )
                packets, loose = received[item.material_id]
                if packets < 0 or loose < 0:
                    raise InvalidArgumentError("received", "quantities must be >= 0")

            discrepancies = 0
            for item in sorted(grn.items, key=lambda i: i.material_id):
                packets, loose = received[item.material_id]
                item.received_packets = packets
                item.received_loose_units = loose
                item.updated_by_id = actor.actor_id
                if item.has_discrepancy:
                    discrepancies += 1
                self._ledger.receive_goods(
                    material_id=item.material_id,
                    retailer_id=grn.retailer_id,
                    packets=packets,
                    loose_units=loose,
                    actor_id=actor.actor_id,
                    grn_id=grn.id,
                )

            now = self._clock.now()
            grn.status = GRNStatus.CONFIRMED.value
            grn.confirmed_at = now
            grn.notes = notes
            grn.updated_by_id = actor.actor_id

            DISPATCH_WORKFLOW.require(
                dispatch.id, dispatch.status, DispatchStatus.DELIVERED.value, "deliver",
            )
            dispatch.status = DispatchStatus.DELIVERED.value
            dispatch.delivered_at = now
            dispatch.updated_by_id = actor.actor_id
            self._session.flush()

            outbox.add(
                self._party_selector.active_ids_by_role(Role.ADMIN),
                NotificationType.GRN_CONFIRMED,
                "GRN confirmed",
                f"GRN {grn.grn_number} confirmed for dispatch {dispatch.dispatch_number}",
                grn.id,
            )
            if discrepancies:
                logger.warning(
                    "grn_discrepancy_recorded",
                    extra={"grn_id": str(grn.id), "discrepant_lines": discrepancies},
                )
            logger.info(
                "grn_confirmed",
                extra={
                    "grn_id": str(grn.id),
                    "grn_number": grn.grn_number,
                    "dispatch_id": str(dispatch.id),
                },
            )
            result = grn.to_dto()
        return result

    def get_grn(self, grn_id: UUID) -> GRN:
        return load(self._session, GRNModel, grn_id, "GRN").to_dto()

    def get_grn_for_dispatch(self, dispatch_id: UUID) -> GRN:
        row = self._session.execute(
            select(GRNModel).where(GRNModel.dispatch_id == dispatch_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("GRN", f"dispatch={dispatch_id}")
        return row.to_dto()
