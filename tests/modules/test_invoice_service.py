"""
Tests for invoice generation: GST regime selection, rate blending across
lines, snapshotting, and append-only storage.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.db.engine import transaction
from supply_kernel.domain.access import Role
from supply_kernel.domain.money import GstBlending
from supply_kernel.exceptions import (
    ConflictError,
    ForbiddenError,
    ImmutabilityViolationError,
    InvalidStateError,
    NotFoundError,
)
from supply_modules.invoice import InvoiceService
from supply_modules.invoice.orm import InvoiceModel


@pytest.fixture
def two_rate_grn(flow, manufacturer, make_material, stock_manufacturer):
    """Confirmed GRN with a 12% line worth 1000.00 and an 18% line worth 500.00."""
    biscuits = make_material(gst_rate=Decimal("12"))
    juice = make_material(gst_rate=Decimal("18"))
    stock_manufacturer(biscuits.material_id, manufacturer.actor_id, 10)
    stock_manufacturer(juice.material_id, manufacturer.actor_id, 5)
    return flow.confirmed_grn({biscuits.material_id: (10, 0), juice.material_id: (5, 0)})


class TestGenerate:

    def test_intrastate(self, flow, orchestrator, admin, manufacturer, retailer, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (10, 3)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)

        assert invoice.invoice_number == "INV-20240315-000001"
        assert invoice.retailer_id == retailer.actor_id
        assert invoice.manufacturer_id == manufacturer.actor_id
        assert invoice.subtotal == Decimal("1030.00")
        assert invoice.gst_rate == Decimal("12")
        assert invoice.cgst == Decimal("61.80")
        assert invoice.sgst == Decimal("61.80")
        assert invoice.igst == Decimal("0.00")
        assert invoice.total == Decimal("1153.60")

    def test_interstate(self, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (10, 3)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=True)
        assert invoice.cgst == invoice.sgst == Decimal("0.00")
        assert invoice.igst == Decimal("123.60")
        assert invoice.total == Decimal("1153.60")

    def test_weighted_rate_across_lines(self, orchestrator, admin, two_rate_grn):
        invoice = orchestrator.invoice.generate(admin, two_rate_grn.grn_id, is_interstate=False)
        # (120 + 90) / 1500
        assert invoice.gst_rate == Decimal("14")
        assert invoice.total_tax == Decimal("210.00")
        assert invoice.total == Decimal("1710.00")

    def test_simple_average_rate(self, session, deterministic_clock, sequences, money, admin, two_rate_grn):
        service = InvoiceService(
            session, deterministic_clock, sequences, money, GstBlending.SIMPLE_AVERAGE,
        )
        invoice = service.generate(admin, two_rate_grn.grn_id, is_interstate=False)
        assert invoice.gst_rate == Decimal("15")
        assert invoice.cgst == Decimal("112.50")
        assert invoice.total == Decimal("1725.00")

    def test_items_snapshot_dispatch_lines(self, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (10, 3)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        [item] = invoice.items
        assert item.material_name == "Butter Biscuits"
        assert item.units_per_packet == 10
        assert item.unit_price == Decimal("10.00")
        assert item.line_total == Decimal("1030.00")
        assert item.hsn_code == "1905"

    def test_price_change_after_dispatch_not_applied(
        self, session, flow, orchestrator, admin, material_service, stocked_material,
    ):
        dispatch = flow.in_transit({stocked_material.material_id: (1, 0)})
        with transaction(session):
            material_service.update(admin, stocked_material.material_id, mrp_per_packet="150.00")
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        orchestrator.grn.confirm(flow.retailer, grn.grn_id, {stocked_material.material_id: (1, 0)})

        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        assert invoice.subtotal == Decimal("100.00")

    def test_one_invoice_per_grn(self, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        with pytest.raises(ConflictError):
            orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=True)

    def test_unconfirmed_grn(self, flow, orchestrator, admin, stocked_material):
        dispatch = flow.in_transit({stocked_material.material_id: (1, 0)})
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        with pytest.raises(InvalidStateError):
            orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)

    def test_admin_only(self, flow, orchestrator, retailer, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        with pytest.raises(ForbiddenError):
            orchestrator.invoice.generate(retailer, grn.grn_id, is_interstate=False)


class TestLookup:

    def test_get_for_grn(self, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        assert orchestrator.invoice.get_for_grn(grn.grn_id).invoice_id == invoice.invoice_id
        assert orchestrator.invoice.get(invoice.invoice_id).invoice_number == invoice.invoice_number

    def test_missing(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.invoice.get(uuid4())
        with pytest.raises(NotFoundError):
            orchestrator.invoice.get_for_grn(uuid4())

    def test_listings(self, flow, orchestrator, admin, retailer, register_party, stocked_material):
        mid = stocked_material.material_id
        first = orchestrator.invoice.generate(admin, flow.confirmed_grn({mid: (1, 0)}).grn_id, is_interstate=False)
        second = orchestrator.invoice.generate(admin, flow.confirmed_grn({mid: (2, 0)}).grn_id, is_interstate=True)

        expected = [first.invoice_id, second.invoice_id]
        assert [i.invoice_id for i in orchestrator.invoice.list_for_retailer(retailer.actor_id)] == expected
        assert [i.invoice_id for i in orchestrator.invoice.list_all()] == expected
        assert orchestrator.invoice.list_for_retailer(register_party(Role.RETAILER).actor_id) == []


class TestImmutability:

    def test_update_rejected(self, session, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        row = session.get(InvoiceModel, invoice.invoice_id)
        row.total = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError):
            with transaction(session):
                session.flush()

    def test_delete_rejected(self, session, flow, orchestrator, admin, stocked_material):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        invoice = orchestrator.invoice.generate(admin, grn.grn_id, is_interstate=False)
        row = session.get(InvoiceModel, invoice.invoice_id)
        with pytest.raises(ImmutabilityViolationError):
            with transaction(session):
                session.delete(row)
                session.flush()
