"""
Production Module Service (``supply_modules.production.service``).

Responsibility
--------------
Records production batches.  One call allocates the BATCH number, stores
the batch with an HSN snapshot, adds the stock to the manufacturer ledger,
and freezes the material's HSN code and GST rate.

Architecture position
---------------------
**Modules layer** -- ``ProductionService`` is the sole public entry point.
Owns the transaction boundary for each call via ``use_case``.

Invariants enforced
-------------------
* Only an active MANUFACTURER records batches, always for itself.
* expiry_date, when given, is strictly after manufacture_date.
* manufacturer_batch_ref is unique per manufacturer.

Failure modes
-------------
* ForbiddenError, InvalidArgumentError, NotFoundError, ConflictError --
  transaction rolled back, nothing persisted.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import ConflictError, ForbiddenError, InvalidArgumentError
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.models.party import Party
from supply_kernel.services.inventory_log import require_quantities
from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._service_helpers import use_case
from supply_modules.production.models import ProductionBatch
from supply_modules.production.orm import ProductionBatchModel

logger = get_logger("modules.production.service")


class ProductionService:
    """
    Records production batches against the manufacturer ledger.

    Guarantees
    ----------
    * The batch row, the ledger change, its log row, and the material's
      production lock commit together or not at all.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequences: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequences or SequenceService(session, self._clock)
        self._ledger = ManufacturerLedger(session)
        self._materials = MaterialService(session)

    def record_batch(
        self,
        actor: Actor,
        material_id: UUID,
        packets: int,
        loose_units: int,
        manufacture_date: date,
        expiry_date: date | None = None,
        manufacturer_batch_ref: str | None = None,
        notes: str | None = None,
    ) -> ProductionBatch:
        """
        Record a batch produced by the calling manufacturer.

        Preconditions:
            - actor is an active MANUFACTURER.
            - material is active; packets/loose_units >= 0, one positive.
        Postconditions:
            - Batch stored with a BATCH number; manufacturer stock increased;
              material.has_production is True.
        Raises:
            ForbiddenError, InvalidArgumentError, NotFoundError, ConflictError.
        """
        require_role(actor, Role.MANUFACTURER)
        with use_case(self._session, actor, None, "production.record_batch"):
            manufacturer = self._session.get(Party, actor.actor_id)
            if manufacturer is None or not manufacturer.is_active:
                raise ForbiddenError(str(actor.actor_id), "manufacturer is not active")

            material = self._materials.require_active(material_id)
            require_quantities(packets, loose_units)
            if expiry_date is not None and expiry_date <= manufacture_date:
                raise InvalidArgumentError("expiry_date", "must be after manufacture_date")

            if manufacturer_batch_ref:
                duplicate = self._session.execute(
                    select(ProductionBatchModel.id).where(
                        ProductionBatchModel.manufacturer_id == actor.actor_id,
                        ProductionBatchModel.manufacturer_batch_ref == manufacturer_batch_ref,
                    )
                ).scalar_one_or_none()
                if duplicate is not None:
                    raise ConflictError(
                        "ProductionBatch", manufacturer_batch_ref,
                        "batch reference already used by this manufacturer",
                    )

            batch = ProductionBatchModel(
                batch_number=self._sequences.next_number(SequenceService.BATCH),
                material_id=material_id,
                manufacturer_id=actor.actor_id,
                manufacturer_batch_ref=manufacturer_batch_ref or None,
                packets=packets,
                loose_units=loose_units,
                manufacture_date=manufacture_date,
                expiry_date=expiry_date,
                hsn_code_snapshot=material.hsn_code,
                notes=notes,
                created_by_id=actor.actor_id,
            )
            self._session.add(batch)
            self._session.flush()
            LogContext.document("ProductionBatch", batch.id)

            self._ledger.add_production(
                material_id=material_id,
                manufacturer_id=actor.actor_id,
                packets=packets,
                loose_units=loose_units,
                actor_id=actor.actor_id,
                reference_id=batch.id,
                notes=f"Batch {batch.batch_number}",
            )
            self._materials.mark_produced(material_id, actor.actor_id)

            logger.info(
                "production_batch_recorded",
                extra={
                    "batch_id": str(batch.id),
                    "batch_number": batch.batch_number,
                    "material_id": str(material_id),
                    "packets": packets,
                    "loose_units": loose_units,
                },
            )
            result = batch.to_dto()
        return result

    def list_for_manufacturer(self, manufacturer_id: UUID) -> list[ProductionBatch]:
        rows = self._session.execute(
            select(ProductionBatchModel)
            .where(ProductionBatchModel.manufacturer_id == manufacturer_id)
            .order_by(ProductionBatchModel.batch_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]
