"""
MaterialService -- the material catalog and its freezing rules.

Responsibility:
    Creates, updates, deactivates, and resolves materials.  Enforces the
    catalog rules the ledgers and pricing depend on: units_per_packet never
    changes, and HSN code / GST rate freeze once the first production batch
    is recorded.

Architecture position:
    Kernel > Services -- imperative shell.  ``resolve`` is the
    material-lookup collaborator used by every pricing workflow.

Invariants enforced:
    - sq_code is unique (ConflictError before the database constraint).
    - units_per_packet > 0, mrp_per_packet > 0, 0 <= gst_rate <= 100.
    - Commission value >= 0; a percentage commission is <= 100.

Failure modes:
    - ForbiddenError: non-admin caller, or HSN/GST change after production.
    - InvalidArgumentError: bad values, unknown fields, or a change to
      units_per_packet.
    - NotFoundError: unknown material id or code.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.access import Actor, Role, require_role
from supply_kernel.domain.dtos import MaterialSnapshot
from supply_kernel.domain.money import CommissionPolicy, CommissionType, MoneyEngine
from supply_kernel.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from supply_kernel.logging_config import get_logger
from supply_kernel.models.material import Material
from supply_kernel.services.base import BaseService

logger = get_logger("services.material")

_HUNDRED = Decimal("100")

UPDATABLE_FIELDS = frozenset({
    "name",
    "description",
    "mrp_per_packet",
    "hsn_code",
    "gst_rate",
    "commission_type",
    "commission_value",
})

PRODUCTION_LOCKED_FIELDS = frozenset({"hsn_code", "gst_rate"})


class MaterialService(BaseService[Material]):
    """
    Catalog maintenance and lookup.

    Contract:
        Mutations require an ADMIN actor and flush within the caller's
        transaction.

    Non-goals:
        - Does NOT price documents; MoneyEngine does.
    """

    def __init__(self, session: Session, money: MoneyEngine | None = None):
        super().__init__(session)
        self._money = money or MoneyEngine()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validated_mrp(self, value) -> Decimal:
        mrp = self._money.to_money(value, "mrp_per_packet")
        if mrp <= 0:
            raise InvalidArgumentError("mrp_per_packet", "must be > 0")
        return mrp

    def _validated_gst(self, value) -> Decimal:
        rate = self._money.to_decimal(value, "gst_rate")
        if rate < 0 or rate > _HUNDRED:
            raise InvalidArgumentError("gst_rate", "must be between 0 and 100")
        return rate

    def _validated_commission(self, commission_type, value) -> CommissionPolicy:
        try:
            kind = CommissionType(commission_type)
        except ValueError as exc:
            raise InvalidArgumentError("commission_type", f"unknown type {commission_type!r}") from exc
        return CommissionPolicy(kind, self._money.to_decimal(value, "commission_value"))

    @staticmethod
    def _validated_text(field: str, value: str | None) -> str:
        if value is None or not str(value).strip():
            raise InvalidArgumentError(field, "must be non-empty")
        return str(value).strip()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        actor: Actor,
        sq_code: str,
        name: str,
        units_per_packet: int,
        mrp_per_packet: Decimal | int | str,
        hsn_code: str,
        gst_rate: Decimal | int | str,
        commission_type: CommissionType | str = CommissionType.PERCENTAGE,
        commission_value: Decimal | int | str = Decimal("0"),
        description: str | None = None,
    ) -> MaterialSnapshot:
        """
        Register a new material.

        Raises:
            ForbiddenError: Actor is not ADMIN.
            ConflictError: sq_code already exists.
            InvalidArgumentError: Any value out of range.
        """
        require_role(actor, Role.ADMIN)
        sq_code = self._validated_text("sq_code", sq_code)
        if isinstance(units_per_packet, bool) or not isinstance(units_per_packet, int) or units_per_packet <= 0:
            raise InvalidArgumentError("units_per_packet", "must be a positive integer")
        mrp = self._validated_mrp(mrp_per_packet)
        rate = self._validated_gst(gst_rate)
        policy = self._validated_commission(commission_type, commission_value)

        existing = self.session.execute(
            select(Material.id).where(Material.sq_code == sq_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise ConflictError("Material", sq_code, "sq_code already exists")

        material = Material(
            sq_code=sq_code,
            name=self._validated_text("name", name),
            description=description,
            units_per_packet=units_per_packet,
            mrp_per_packet=mrp,
            hsn_code=self._validated_text("hsn_code", hsn_code),
            gst_rate=rate,
            commission_type=policy.commission_type.value,
            commission_value=policy.value,
            has_production=False,
            is_active=True,
            created_by_id=actor.actor_id,
        )
        self.session.add(material)
        self.session.flush()

        logger.info(
            "material_created",
            extra={
                "material_id": str(material.id),
                "sq_code": sq_code,
                "units_per_packet": units_per_packet,
                "mrp_per_packet": str(mrp),
                "gst_rate": str(rate),
            },
        )
        return material.to_snapshot()

    def update(self, actor: Actor, material_id: UUID, **changes) -> MaterialSnapshot:
        """
        Change catalog fields.

        Raises:
            InvalidArgumentError: units_per_packet in changes, or an unknown
                field.
            ForbiddenError: hsn_code/gst_rate after production.
        """
        require_role(actor, Role.ADMIN)
        if "units_per_packet" in changes:
            raise InvalidArgumentError("units_per_packet", "cannot change after creation")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(sorted(unknown)[0], "not an updatable field")

        material = self._load(material_id)
        locked = PRODUCTION_LOCKED_FIELDS & set(changes)
        if material.has_production and locked:
            logger.warning(
                "material_update_refused",
                extra={"material_id": str(material_id), "fields": sorted(locked)},
            )
            raise ForbiddenError(
                actor_id=str(actor.actor_id),
                reason=f"{sorted(locked)} are locked after first production",
            )

        if "name" in changes:
            material.name = self._validated_text("name", changes["name"])
        if "description" in changes:
            material.description = changes["description"]
        if "mrp_per_packet" in changes:
            material.mrp_per_packet = self._validated_mrp(changes["mrp_per_packet"])
        if "hsn_code" in changes:
            material.hsn_code = self._validated_text("hsn_code", changes["hsn_code"])
        if "gst_rate" in changes:
            material.gst_rate = self._validated_gst(changes["gst_rate"])
        if "commission_type" in changes or "commission_value" in changes:
            policy = self._validated_commission(
                changes.get("commission_type", material.commission_type),
                changes.get("commission_value", material.commission_value),
            )
            material.commission_type = policy.commission_type.value
            material.commission_value = policy.value

        material.updated_by_id = actor.actor_id
        self.session.flush()
        logger.info(
            "material_updated",
            extra={"material_id": str(material_id), "fields": sorted(changes)},
        )
        return material.to_snapshot()

    def deactivate(self, actor: Actor, material_id: UUID) -> MaterialSnapshot:
        require_role(actor, Role.ADMIN)
        material = self._load(material_id)
        material.is_active = False
        material.updated_by_id = actor.actor_id
        self.session.flush()
        logger.info("material_deactivated", extra={"material_id": str(material_id)})
        return material.to_snapshot()

    def mark_produced(self, material_id: UUID, actor_id: UUID) -> None:
        """Flip has_production; HSN and GST are frozen from here on."""
        material = self._load(material_id)
        if not material.has_production:
            material.has_production = True
            material.updated_by_id = actor_id
            self.session.flush()
            logger.info("material_production_locked", extra={"material_id": str(material_id)})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, material_id: UUID) -> Material:
        material = self.session.get(Material, material_id)
        if material is None:
            raise NotFoundError("Material", str(material_id))
        return material

    def get(self, material_id: UUID) -> MaterialSnapshot:
        return self._load(material_id).to_snapshot()

    def resolve(self, id_or_code: UUID | str) -> MaterialSnapshot:
        """Look a material up by id, or by sq_code when given a string."""
        if isinstance(id_or_code, UUID):
            return self.get(id_or_code)
        material = self.session.execute(
            select(Material).where(Material.sq_code == id_or_code)
        ).scalar_one_or_none()
        if material is None:
            raise NotFoundError("Material", str(id_or_code))
        return material.to_snapshot()

    def require_active(self, material_id: UUID) -> MaterialSnapshot:
        """Snapshot of an existing, active material."""
        snapshot = self.get(material_id)
        if not snapshot.is_active:
            raise InvalidArgumentError("material_id", f"material {snapshot.sq_code} is inactive")
        return snapshot
