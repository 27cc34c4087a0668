"""
Invoice Module Service (``supply_modules.invoice.service``).

Responsibility
--------------
Generates the tax invoice for a confirmed GRN from the prices frozen on
its dispatch.  Invoices are written once and never updated.

Architecture position
---------------------
**Modules layer** -- ``InvoiceService`` is the sole public entry point.  All
tax arithmetic is delegated to ``MoneyEngine``.

Invariants enforced
-------------------
* One invoice per GRN; the GRN must be CONFIRMED.
* subtotal is the sum of the dispatch's frozen line totals.
* GST is computed on the subtotal at one blended rate; CGST+SGST for
  intrastate supply, IGST for interstate.

Failure modes
-------------
* ForbiddenError -- caller is not ADMIN.
* InvalidStateError -- GRN not CONFIRMED.
* ConflictError -- GRN already invoiced.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.types import round_money
from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.money import GstBlending, MoneyEngine
from supply_kernel.exceptions import ConflictError, InvalidStateError, NotFoundError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import load, lock_for_update, use_case
from supply_modules.dispatch.models import GRNStatus
from supply_modules.dispatch.orm import DispatchOrderModel, GRNModel
from supply_modules.invoice.models import Invoice
from supply_modules.invoice.orm import InvoiceItemModel, InvoiceModel

logger = get_logger("modules.invoice.service")

# Stored precision of the blended rate
_RATE_PLACES = 4


class InvoiceService:
    """
    Invoice generation and lookup.

    Contract
    --------
    ``generate`` is the only write.  There is no update or delete; the ORM
    listeners registered by ``register_module_immutability`` reject both.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequences: SequenceService | None = None,
        money: MoneyEngine | None = None,
        gst_blending: GstBlending = GstBlending.WEIGHTED,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequences or SequenceService(session, self._clock)
        self._money = money or MoneyEngine()
        self._gst_blending = GstBlending(gst_blending)
        self._materials = MaterialService(session, self._money)

    def generate(self, actor: Actor, grn_id: UUID, is_interstate: bool) -> Invoice:
        """
        Invoice a confirmed GRN.

        Preconditions:
            - actor is ADMIN; GRN CONFIRMED and not yet invoiced.
        Postconditions:
            - Invoice with INV number, blended GST rate, and the tax split
              for the chosen regime.  Items snapshot the material name and
              units per packet as of now, plus the dispatch line's frozen
              price, HSN code, and GST rate.
        Raises:
            ForbiddenError, InvalidStateError, ConflictError, NotFoundError.
        """
        require_role(actor, Role.ADMIN)
        with use_case(self._session, actor, None, "invoice.generate"):
            grn = lock_for_update(self._session, GRNModel, grn_id, "GRN")
            if grn.status != GRNStatus.CONFIRMED.value:
                raise InvalidStateError("GRN", str(grn.id), grn.status, "generate_invoice")

            existing = self._session.execute(
                select(InvoiceModel.id).where(InvoiceModel.grn_id == grn.id)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError("Invoice", grn.grn_number, "GRN already invoiced")

            dispatch = load(self._session, DispatchOrderModel, grn.dispatch_id, "DispatchOrder")
            lines = list(dispatch.items)
            subtotal = self._money.sum(line.line_total for line in lines)
            pairs = [(line.line_total, line.gst_rate) for line in lines]
            exact_rate = self._money.blended_gst_rate(pairs, self._gst_blending, places=None)
            breakdown = self._money.gst_split(subtotal, exact_rate, is_interstate)

            invoice = InvoiceModel(
                invoice_number=self._sequences.next_number(SequenceService.INVOICE),
                grn_id=grn.id,
                retailer_id=grn.retailer_id,
                manufacturer_id=dispatch.manufacturer_id,
                is_interstate=bool(is_interstate),
                subtotal=breakdown.subtotal,
                gst_rate=round_money(exact_rate, decimal_places=_RATE_PLACES),
                cgst=breakdown.cgst,
                sgst=breakdown.sgst,
                igst=breakdown.igst,
                total=breakdown.total,
                created_by_id=actor.actor_id,
            )
            for index, line in enumerate(lines, start=1):
                material = self._materials.get(line.material_id)
                invoice.items.append(
                    InvoiceItemModel(
                        line_number=index,
                        material_id=line.material_id,
                        material_name=material.name,
                        hsn_code=line.hsn_code,
                        gst_rate=line.gst_rate,
                        packets=line.packets,
                        loose_units=line.loose_units,
                        units_per_packet=material.units_per_packet,
                        unit_price=line.unit_price,
                        line_total=line.line_total,
                        created_by_id=actor.actor_id,
                    )
                )
            self._session.add(invoice)
            self._session.flush()
            LogContext.document("Invoice", invoice.id)

            logger.info(
                "invoice_generated",
                extra={
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "grn_id": str(grn.id),
                    "is_interstate": invoice.is_interstate,
                    "subtotal": self._money.to_storage_string(invoice.subtotal),
                    "total": self._money.to_storage_string(invoice.total),
                    "gst_blending": self._gst_blending.value,
                },
            )
            result = invoice.to_dto()
        return result

    def get(self, invoice_id: UUID) -> Invoice:
        return load(self._session, InvoiceModel, invoice_id, "Invoice").to_dto()

    def get_for_grn(self, grn_id: UUID) -> Invoice:
        row = self._session.execute(
            select(InvoiceModel).where(InvoiceModel.grn_id == grn_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Invoice", f"grn={grn_id}")
        return row.to_dto()

    def list_for_retailer(self, retailer_id: UUID) -> list[Invoice]:
        rows = self._session.execute(
            select(InvoiceModel)
            .where(InvoiceModel.retailer_id == retailer_id)
            .order_by(InvoiceModel.invoice_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def list_all(self) -> list[Invoice]:
        rows = self._session.execute(
            select(InvoiceModel).order_by(InvoiceModel.invoice_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]
