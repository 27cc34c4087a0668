"""
Sales Module Service (``supply_modules.sales.service``).

Responsibility
--------------
Records retail sales of loose units and the commissions they earn, and
pays those commissions out.

Architecture position
---------------------
**Modules layer** -- ``SaleService`` and ``CommissionService`` are the
public entry points.  Stock effects go through ``RetailerLedger``; prices
and commission amounts through ``MoneyEngine``.

Invariants enforced
-------------------
* A sale, its stock movement, and its PENDING commission commit together.
* unit_price comes from the material's MRP at the moment of sale.
* Commissions move PENDING -> PAID exactly once.

Failure modes
-------------
* InsufficientInventoryError -- retailer cannot cover the units; nothing
  is recorded.
* InvalidStateError -- paying a commission that is already PAID.

Audit relevance
---------------
``sale_recorded`` and ``commission_paid`` events; SALE and PACKET_OPEN
rows in the inventory log reference the sale id.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.money import MoneyEngine
from supply_kernel.exceptions import InvalidArgumentError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.retailer_ledger import RetailerLedger
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import lock_for_update, use_case
from supply_modules.sales.models import (
    Commission,
    CommissionStatus,
    CommissionSummary,
    Sale,
    SaleReceipt,
)
from supply_modules.sales.orm import CommissionModel, SaleModel
from supply_modules.sales.workflows import COMMISSION_WORKFLOW

logger = get_logger("modules.sales.service")


class SaleService:
    """
    Retail sale recording.

    Guarantees
    ----------
    * The SALE number, the sale row, the ledger change (including any
      packets opened), and the commission row are one atomic unit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequences: SequenceService | None = None,
        money: MoneyEngine | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequences or SequenceService(session, self._clock)
        self._money = money or MoneyEngine()
        self._ledger = RetailerLedger(session)
        self._materials = MaterialService(session, self._money)

    def record_sale(self, actor: Actor, material_id: UUID, units_sold: int) -> SaleReceipt:
        """
        Sell ``units_sold`` loose units from the calling retailer's stock.

        Preconditions:
            - actor is a RETAILER; material active; units_sold > 0.
        Postconditions:
            - Sale with SALE number and packets_opened.
            - Retailer stock reduced; PENDING commission per the material's
              policy.
        Raises:
            ForbiddenError, InvalidArgumentError, NotFoundError,
            InsufficientInventoryError.
        """
        require_role(actor, Role.RETAILER)
        if isinstance(units_sold, bool) or not isinstance(units_sold, int) or units_sold <= 0:
            raise InvalidArgumentError("units_sold", "must be a positive integer")
        with use_case(self._session, actor, None, "sales.record_sale"):
            material = self._materials.require_active(material_id)
            unit_price = self._money.unit_price(material.mrp_per_packet, material.units_per_packet)
            total_amount = self._money.line_total(unit_price, units_sold)

            sale = SaleModel(
                sale_number=self._sequences.next_number(SequenceService.SALE),
                material_id=material_id,
                retailer_id=actor.actor_id,
                units_sold=units_sold,
                unit_price=unit_price,
                total_amount=total_amount,
                packets_opened=0,
                created_by_id=actor.actor_id,
            )
            self._session.add(sale)
            self._session.flush()
            LogContext.document("Sale", sale.id)

            sale.packets_opened = self._ledger.sell_units(
                material_id=material_id,
                retailer_id=actor.actor_id,
                units_requested=units_sold,
                actor_id=actor.actor_id,
                sale_id=sale.id,
            )

            policy = material.commission_policy
            commission = CommissionModel(
                sale_id=sale.id,
                retailer_id=actor.actor_id,
                commission_type=policy.commission_type.value,
                commission_rate=policy.value,
                units_sold=units_sold,
                amount=self._money.commission(policy, unit_price, units_sold),
                status=COMMISSION_WORKFLOW.initial_state,
                created_by_id=actor.actor_id,
            )
            self._session.add(commission)
            self._session.flush()

            logger.info(
                "sale_recorded",
                extra={
                    "sale_id": str(sale.id),
                    "sale_number": sale.sale_number,
                    "material_id": str(material_id),
                    "units_sold": units_sold,
                    "packets_opened": sale.packets_opened,
                    "total_amount": self._money.to_storage_string(total_amount),
                    "commission": self._money.to_storage_string(commission.amount),
                },
            )
            result = SaleReceipt(sale=sale.to_dto(), commission=commission.to_dto())
        return result

    def list_for_retailer(self, retailer_id: UUID) -> list[Sale]:
        rows = self._session.execute(
            select(SaleModel)
            .where(SaleModel.retailer_id == retailer_id)
            .order_by(SaleModel.sale_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]


class CommissionService:
    """Commission payout and reporting."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        money: MoneyEngine | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._money = money or MoneyEngine()

    def _pay(self, row: CommissionModel, actor: Actor) -> None:
        COMMISSION_WORKFLOW.require(row.id, row.status, CommissionStatus.PAID.value, "mark_paid")
        row.status = CommissionStatus.PAID.value
        row.paid_at = self._clock.now()
        row.updated_by_id = actor.actor_id

    def mark_paid(self, actor: Actor, commission_id: UUID) -> Commission:
        """
        PENDING -> PAID.

        Raises:
            ForbiddenError: actor is not ADMIN.
            InvalidStateError: already PAID.
        """
        require_role(actor, Role.ADMIN)
        with use_case(self._session, actor, None, "commission.mark_paid"):
            row = lock_for_update(self._session, CommissionModel, commission_id, "Commission")
            self._pay(row, actor)
            self._session.flush()
            logger.info(
                "commission_paid",
                extra={
                    "commission_id": str(row.id),
                    "amount": self._money.to_storage_string(row.amount),
                },
            )
            result = row.to_dto()
        return result

    def mark_all_paid_for_retailer(self, actor: Actor, retailer_id: UUID) -> int:
        """Pay every PENDING commission of one retailer; returns how many."""
        require_role(actor, Role.ADMIN)
        with use_case(self._session, actor, None, "commission.mark_all_paid"):
            rows = self._session.execute(
                select(CommissionModel)
                .where(
                    CommissionModel.retailer_id == retailer_id,
                    CommissionModel.status == CommissionStatus.PENDING.value,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars().all()
            for row in rows:
                self._pay(row, actor)
            self._session.flush()
            logger.info(
                "commissions_paid_for_retailer",
                extra={
                    "retailer_id": str(retailer_id),
                    "count": len(rows),
                    "amount": self._money.to_storage_string(
                        self._money.sum(row.amount for row in rows)
                    ),
                },
            )
        return len(rows)

    # =========================================================================
    # Reporting
    # =========================================================================

    def _aggregate(self, retailer_id: UUID | None = None):
        stmt = select(
            CommissionModel.retailer_id,
            CommissionModel.status,
            func.count(CommissionModel.id),
            func.sum(CommissionModel.amount),
        ).group_by(CommissionModel.retailer_id, CommissionModel.status)
        if retailer_id is not None:
            stmt = stmt.where(CommissionModel.retailer_id == retailer_id)
        return self._session.execute(stmt).all()

    def _summarize(self, groups) -> CommissionSummary:
        counts: dict[str, int] = defaultdict(int)
        amounts: dict[str, Decimal] = defaultdict(self._money.zero)
        for status, count, amount in groups:
            counts[status] += int(count)
            amounts[status] = self._money.add(amounts[status], amount or 0)
        pending = CommissionStatus.PENDING.value
        paid = CommissionStatus.PAID.value
        return CommissionSummary(
            total_count=counts[pending] + counts[paid],
            pending_count=counts[pending],
            paid_count=counts[paid],
            total_amount=self._money.add(amounts[pending], amounts[paid]),
            pending_amount=amounts[pending],
            paid_amount=amounts[paid],
        )

    def summary(self, retailer_id: UUID | None = None) -> CommissionSummary:
        """Totals across all retailers, or for one."""
        return self._summarize(
            (status, count, amount) for _, status, count, amount in self._aggregate(retailer_id)
        )

    def summary_by_retailer(self) -> dict[UUID, CommissionSummary]:
        grouped = defaultdict(list)
        for retailer_id, status, count, amount in self._aggregate():
            grouped[retailer_id].append((status, count, amount))
        return {retailer_id: self._summarize(groups) for retailer_id, groups in grouped.items()}

    def list_for_retailer(
        self,
        retailer_id: UUID,
        status: CommissionStatus | None = None,
    ) -> list[Commission]:
        stmt = select(CommissionModel).where(CommissionModel.retailer_id == retailer_id)
        if status is not None:
            stmt = stmt.where(CommissionModel.status == CommissionStatus(status).value)
        rows = self._session.execute(stmt.order_by(CommissionModel.created_at)).scalars().all()
        return [row.to_dto() for row in rows]
