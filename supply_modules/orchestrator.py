"""
supply_modules.orchestrator -- one place that wires every service.

Responsibility:
    Builds the kernel and module services for one session from a
    ``SupplyConfig``, sharing a single ``SequenceService``, ``MoneyEngine``,
    ``Clock``, and ``Notifier`` between them.

Architecture position:
    Modules layer, top.  Imports kernel, config bridges, and every module
    service.  Nothing in the kernel or config imports this.

Usage:
    orchestrator = SupplyOrchestrator(session, get_active_config())
    orchestrator.srn.create(retailer, lines)
    orchestrator.dispatch.create_dispatch(admin, srn_id)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from supply_config import SupplyConfig, get_active_config
from supply_config.bridges import (
    build_money_engine,
    build_sequence_service,
    gst_blending_from_config,
)
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.selectors.inventory_selector import InventorySelector
from supply_kernel.selectors.notification_selector import NotificationSelector
from supply_kernel.selectors.party_selector import PartySelector
from supply_kernel.selectors.report_selector import ReportSelector
from supply_kernel.services.material_service import MaterialService
from supply_kernel.services.notification_service import Notifier, StoredNotifier
from supply_kernel.services.party_service import PartyService
from supply_modules.dispatch.service import DispatchService, GRNService
from supply_modules.invoice.service import InvoiceService
from supply_modules.production.service import ProductionService
from supply_modules.returns.service import ReturnService
from supply_modules.sales.service import CommissionService, SaleService
from supply_modules.srn.service import SRNService


class SupplyOrchestrator:
    """Central factory for services bound to one session.

    Contract:
        Every service is constructed exactly once, in dependency order, and
        exposed as a public attribute.

    Non-goals:
        - Does NOT own the session lifecycle; each use case commits its
          own transaction.
    """

    def __init__(
        self,
        session: Session,
        config: SupplyConfig | None = None,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
    ):
        self.session = session
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()
        self.money = build_money_engine(self.config)
        self.sequences = build_sequence_service(session, self.config, self.clock)
        self.notifier = notifier if notifier is not None else StoredNotifier(session)

        # Kernel services and selectors
        self.materials = MaterialService(session, self.money)
        self.parties = PartyService(session)
        self.inventory = InventorySelector(session)
        self.party_selector = PartySelector(session)
        self.reports = ReportSelector(session)
        self.notifications = NotificationSelector(session)

        # Module services
        self.production = ProductionService(session, self.clock, self.sequences)
        self.srn = SRNService(session, self.clock, self.notifier, self.sequences)
        self.dispatch = DispatchService(
            session, self.clock, self.notifier, self.sequences, self.money,
        )
        self.grn = GRNService(session, self.clock, self.notifier, self.sequences)
        self.invoice = InvoiceService(
            session, self.clock, self.sequences, self.money,
            gst_blending=gst_blending_from_config(self.config),
        )
        self.sales = SaleService(session, self.clock, self.sequences, self.money)
        self.commissions = CommissionService(session, self.clock, self.money)
        self.returns = ReturnService(session, self.clock, self.notifier, self.sequences)
