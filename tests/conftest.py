"""
Pytest fixtures for the supply ledger test suite.

Provides:
- Database sessions with per-test rollback isolation
- A deterministic clock pinned to a fixed UTC instant
- Registered admin / manufacturer / retailer actors
- Material and stock factories
- A recording notifier and structured-log capture
- A ``flow`` helper that drives documents through SRN -> dispatch -> GRN

Environment Variables:
- DATABASE_URL: connection URL.  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from supply_config import get_active_config
from supply_kernel.db.engine import (
    drop_tables,
    init_engine_from_url,
    reset_engine,
    transaction,
)
from supply_kernel.db.immutability import unregister_immutability_listeners
from supply_kernel.domain.access import Actor, Role
from supply_kernel.domain.clock import DeterministicClock
from supply_kernel.domain.money import CommissionType, MoneyEngine
from supply_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from supply_kernel.selectors.inventory_selector import InventorySelector
from supply_kernel.services.manufacturer_ledger import ManufacturerLedger
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import Notifier, NotificationType
from supply_kernel.services.party_service import PartyService
from supply_kernel.services.retailer_ledger import RetailerLedger
from supply_kernel.services.sequence_service import SequenceService
from supply_modules._orm_registry import create_all_tables, register_all_immutability
from supply_modules.dispatch.models import GRN, DispatchOrder
from supply_modules.orchestrator import SupplyOrchestrator
from supply_modules.srn.models import SRN, SRNApproval, SRNLineRequest

DEFAULT_DATABASE_URL = "sqlite://"

# 2024-03-15 10:00 UTC; document numbers read ...-20240315-...
FIXED_NOW = datetime(2024, 3, 15, 10, 0, 0, tzinfo=timezone.utc)


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture supply_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ...):
            ...
            logs = captured_logs()
            assert any(r["event"] == "srn_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("supply_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    drop_tables()
    create_all_tables()
    register_all_immutability()
    yield
    unregister_immutability_listeners()
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Opens a dedicated connection with an outer transaction and a session
    that joins it with ``create_savepoint``: every ``session.commit()``
    inside the test releases a savepoint, and teardown rolls the outer
    transaction back, undoing all data changes.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Clock, money, sequences
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def money() -> MoneyEngine:
    return MoneyEngine()


@pytest.fixture
def sequences(session, deterministic_clock) -> SequenceService:
    return SequenceService(session, deterministic_clock)


# =============================================================================
# Parties
# =============================================================================


@pytest.fixture
def party_service(session) -> PartyService:
    return PartyService(session)


@pytest.fixture
def register_party(session, party_service):
    """Factory: register and commit a party, returning its Actor."""

    def _register(role: Role, code: str | None = None, name: str | None = None) -> Actor:
        code = code or f"{role.value[:3]}-{uuid4().hex[:8]}"
        with transaction(session):
            info = party_service.register(code, name or code, role)
        return info.as_actor()

    return _register


@pytest.fixture
def admin(register_party) -> Actor:
    return register_party(Role.ADMIN, "ADM-001", "Head Office")


@pytest.fixture
def manufacturer(register_party) -> Actor:
    return register_party(Role.MANUFACTURER, "MFG-001", "Acme Foods")


@pytest.fixture
def retailer(register_party) -> Actor:
    return register_party(Role.RETAILER, "RTL-001", "Corner Store")


@pytest.fixture
def assigned(session, party_service, admin, retailer, manufacturer) -> None:
    """``retailer`` may be supplied by ``manufacturer``."""
    with transaction(session):
        party_service.assign_retailer(admin, retailer.actor_id, manufacturer.actor_id)


# =============================================================================
# Materials and stock
# =============================================================================


@pytest.fixture
def material_service(session) -> MaterialService:
    return MaterialService(session)


@pytest.fixture
def make_material(session, material_service, admin):
    """Factory: create and commit a material; returns its snapshot."""

    def _make(
        sq_code: str | None = None,
        units_per_packet: int = 10,
        mrp_per_packet: Decimal | str = Decimal("100.00"),
        gst_rate: Decimal | str = Decimal("12"),
        hsn_code: str = "1905",
        commission_type: CommissionType = CommissionType.PERCENTAGE,
        commission_value: Decimal | str = Decimal("5"),
        name: str | None = None,
    ):
        sq_code = sq_code or f"SQ-{uuid4().hex[:8]}"
        with transaction(session):
            return material_service.create(
                admin,
                sq_code=sq_code,
                name=name or f"Material {sq_code}",
                units_per_packet=units_per_packet,
                mrp_per_packet=mrp_per_packet,
                hsn_code=hsn_code,
                gst_rate=gst_rate,
                commission_type=commission_type,
                commission_value=commission_value,
            )

    return _make


@pytest.fixture
def material(make_material):
    """upp 10, MRP 100.00, GST 12%, 5% commission."""
    return make_material(sq_code="SQ-BISCUIT", name="Butter Biscuits")


@pytest.fixture
def manufacturer_ledger(session) -> ManufacturerLedger:
    return ManufacturerLedger(session)


@pytest.fixture
def retailer_ledger(session) -> RetailerLedger:
    return RetailerLedger(session)


@pytest.fixture
def inventory_selector(session) -> InventorySelector:
    return InventorySelector(session)


@pytest.fixture
def stock_manufacturer(session, manufacturer_ledger):
    """Factory: commit production stock for a manufacturer."""

    def _stock(material_id: UUID, manufacturer_id: UUID, packets: int, loose_units: int = 0):
        with transaction(session):
            return manufacturer_ledger.add_production(
                material_id=material_id,
                manufacturer_id=manufacturer_id,
                packets=packets,
                loose_units=loose_units,
                actor_id=manufacturer_id,
                reference_id=uuid4(),
            )

    return _stock


@pytest.fixture
def stock_retailer(session, retailer_ledger):
    """Factory: commit received stock for a retailer."""

    def _stock(material_id: UUID, retailer_id: UUID, packets: int, loose_units: int = 0):
        with transaction(session):
            return retailer_ledger.receive_goods(
                material_id=material_id,
                retailer_id=retailer_id,
                packets=packets,
                loose_units=loose_units,
                actor_id=retailer_id,
                grn_id=uuid4(),
            )

    return _stock


# =============================================================================
# Notifications and wiring
# =============================================================================


class RecordingNotifier(Notifier):
    """Keeps every delivered notification in memory."""

    def __init__(self):
        self.sent: list[tuple[tuple[UUID, ...], NotificationType, str, str, UUID | None]] = []

    def notify(self, user_ids, notification_type, title, message, reference_id) -> None:
        self.sent.append((tuple(user_ids), notification_type, title, message, reference_id))

    def of_type(self, notification_type: NotificationType) -> list[tuple]:
        return [n for n in self.sent if n[1] == notification_type]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def orchestrator(session, deterministic_clock, notifier) -> SupplyOrchestrator:
    return SupplyOrchestrator(
        session,
        config=get_active_config(),
        clock=deterministic_clock,
        notifier=notifier,
    )


# =============================================================================
# Document flow
# =============================================================================


@dataclass
class SupplyFlow:
    """Drives the happy path one step at a time."""

    orchestrator: SupplyOrchestrator
    admin: Actor
    manufacturer: Actor
    retailer: Actor

    def submitted_srn(self, lines: dict[UUID, tuple[int, int]]) -> SRN:
        srn = self.orchestrator.srn.create(
            self.retailer,
            [SRNLineRequest(material_id, p, u) for material_id, (p, u) in lines.items()],
        )
        return self.orchestrator.srn.submit(self.retailer, srn.srn_id)

    def approved_srn(
        self,
        lines: dict[UUID, tuple[int, int]],
        approve: dict[UUID, tuple[int, int]] | None = None,
    ) -> SRN:
        srn = self.submitted_srn(lines)
        return self.orchestrator.srn.process_approval(
            self.admin,
            srn.srn_id,
            SRNApproval(self.manufacturer.actor_id, approve or lines),
        )

    def pending_dispatch(self, lines, approve=None) -> DispatchOrder:
        srn = self.approved_srn(lines, approve)
        return self.orchestrator.dispatch.create_dispatch(self.admin, srn.srn_id)

    def in_transit(self, lines, approve=None) -> DispatchOrder:
        dispatch = self.pending_dispatch(lines, approve)
        return self.orchestrator.dispatch.execute(self.manufacturer, dispatch.dispatch_id)

    def confirmed_grn(self, lines, approve=None, received=None) -> GRN:
        dispatch = self.in_transit(lines, approve)
        grn = self.orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        if received is None:
            received = {i.material_id: (i.expected_packets, i.expected_loose_units) for i in grn.items}
        return self.orchestrator.grn.confirm(self.retailer, grn.grn_id, received)


@pytest.fixture
def flow(orchestrator, admin, manufacturer, retailer, assigned) -> SupplyFlow:
    return SupplyFlow(orchestrator, admin, manufacturer, retailer)


@pytest.fixture
def stocked_material(material, manufacturer, stock_manufacturer):
    """The default material with 15 packets and 5 loose units at the manufacturer."""
    stock_manufacturer(material.material_id, manufacturer.actor_id, 15, 5)
    return material


@pytest.fixture
def test_actor_id() -> UUID:
    return uuid4()
