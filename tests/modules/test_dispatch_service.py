"""
Tests for dispatch orders and goods received notes.

Covers dispatch pricing from the material catalog, the blocked-to-shipped
stock movement on execution, and GRN confirmation with discrepancies.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.db.engine import transaction
from supply_kernel.domain.access import Role
from supply_kernel.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientBlockedError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from supply_kernel.logging_config import LogContext
from supply_kernel.services.notification_service import NotificationType
from supply_modules.dispatch import DispatchStatus, GRNStatus


class TestCreateDispatch:

    def test_prices_approved_lines(self, flow, stocked_material):
        dispatch = flow.pending_dispatch({stocked_material.material_id: (10, 3)})

        assert dispatch.status == DispatchStatus.PENDING
        assert dispatch.dispatch_number == "DO-20240315-000001"
        [item] = dispatch.items
        assert (item.packets, item.loose_units) == (10, 3)
        assert item.unit_price == Decimal("10.00")
        assert item.line_total == Decimal("1030.00")
        assert item.hsn_code == "1905"
        assert item.gst_rate == Decimal("12")
        assert dispatch.subtotal == Decimal("1030.00")

    def test_opens_pending_grn(self, flow, orchestrator, retailer, stocked_material):
        dispatch = flow.pending_dispatch({stocked_material.material_id: (10, 3)})
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        assert grn.status == GRNStatus.PENDING
        assert grn.retailer_id == retailer.actor_id
        [item] = grn.items
        assert (item.expected_packets, item.expected_loose_units) == (10, 3)
        assert item.received_packets is None

    def test_zero_lines_skipped(self, flow, manufacturer, make_material, stock_manufacturer):
        first = make_material()
        second = make_material()
        stock_manufacturer(first.material_id, manufacturer.actor_id, 5)
        dispatch = flow.pending_dispatch(
            {first.material_id: (2, 0), second.material_id: (1, 0)},
            approve={first.material_id: (2, 0), second.material_id: (0, 0)},
        )
        assert [i.material_id for i in dispatch.items] == [first.material_id]

    def test_bound_manufacturer_may_create(self, flow, orchestrator, manufacturer, stocked_material):
        srn = flow.approved_srn({stocked_material.material_id: (1, 0)})
        dispatch = orchestrator.dispatch.create_dispatch(manufacturer, srn.srn_id)
        assert dispatch.manufacturer_id == manufacturer.actor_id

    def test_other_manufacturer_forbidden(self, flow, orchestrator, register_party, stocked_material):
        srn = flow.approved_srn({stocked_material.material_id: (1, 0)})
        other = register_party(Role.MANUFACTURER)
        with pytest.raises(ForbiddenError):
            orchestrator.dispatch.create_dispatch(other, srn.srn_id)

    def test_retailer_forbidden(self, flow, orchestrator, retailer, stocked_material):
        srn = flow.approved_srn({stocked_material.material_id: (1, 0)})
        with pytest.raises(ForbiddenError):
            orchestrator.dispatch.create_dispatch(retailer, srn.srn_id)

    def test_unapproved_srn(self, flow, orchestrator, admin, stocked_material):
        srn = flow.submitted_srn({stocked_material.material_id: (1, 0)})
        with pytest.raises(InvalidStateError):
            orchestrator.dispatch.create_dispatch(admin, srn.srn_id)

    def test_one_dispatch_per_srn(self, flow, orchestrator, admin, stocked_material):
        srn = flow.approved_srn({stocked_material.material_id: (1, 0)})
        orchestrator.dispatch.create_dispatch(admin, srn.srn_id)
        with pytest.raises(ConflictError):
            orchestrator.dispatch.create_dispatch(admin, srn.srn_id)

    def test_notifies_admins(self, flow, notifier, admin, stocked_material):
        dispatch = flow.pending_dispatch({stocked_material.material_id: (1, 0)})
        [note] = notifier.of_type(NotificationType.DISPATCH_CREATED)
        assert note[0] == (admin.actor_id,)
        assert note[4] == dispatch.dispatch_id

    def test_lookup_by_srn(self, flow, orchestrator, stocked_material):
        srn = flow.approved_srn({stocked_material.material_id: (1, 0)})
        assert orchestrator.dispatch.get_dispatch_for_srn(srn.srn_id) is None
        dispatch = orchestrator.dispatch.create_dispatch(flow.admin, srn.srn_id)
        assert orchestrator.dispatch.get_dispatch_for_srn(srn.srn_id).dispatch_id == dispatch.dispatch_id


class TestExecute:

    def test_ships_blocked_stock(self, flow, orchestrator, notifier, manufacturer, retailer, stocked_material):
        mid = stocked_material.material_id
        dispatch = flow.in_transit({mid: (10, 3)})

        assert dispatch.status == DispatchStatus.IN_TRANSIT
        assert dispatch.executed_at is not None
        stock = orchestrator.inventory.manufacturer_stock(mid, manufacturer.actor_id)
        assert (stock.full_packets, stock.loose_units) == (5, 2)
        assert (stock.blocked_packets, stock.blocked_loose_units) == (0, 0)
        # Retailer stock only moves on GRN confirmation
        assert orchestrator.inventory.retailer_stock(mid, retailer.actor_id).total_units == 0

        [note] = notifier.of_type(NotificationType.DISPATCH_EXECUTED)
        assert note[0] == (retailer.actor_id,)

    def test_cannot_execute_twice(self, flow, orchestrator, manufacturer, stocked_material):
        dispatch = flow.in_transit({stocked_material.material_id: (1, 0)})
        with pytest.raises(InvalidStateError):
            orchestrator.dispatch.execute(manufacturer, dispatch.dispatch_id)

    def test_released_block_aborts_whole_dispatch(
        self, session, flow, orchestrator, manufacturer, manufacturer_ledger, make_material, stock_manufacturer,
    ):
        first = make_material()
        second = make_material()
        stock_manufacturer(first.material_id, manufacturer.actor_id, 5)
        stock_manufacturer(second.material_id, manufacturer.actor_id, 5)
        dispatch = flow.pending_dispatch({first.material_id: (3, 0), second.material_id: (3, 0)})

        with transaction(session):
            manufacturer_ledger.release_block(
                second.material_id, manufacturer.actor_id, 1, 0,
                actor_id=manufacturer.actor_id, srn_id=dispatch.srn_id,
            )

        with pytest.raises(InsufficientBlockedError):
            orchestrator.dispatch.execute(manufacturer, dispatch.dispatch_id)

        assert orchestrator.dispatch.get_dispatch(dispatch.dispatch_id).status == DispatchStatus.PENDING
        stock = orchestrator.inventory.manufacturer_stock(first.material_id, manufacturer.actor_id)
        assert (stock.full_packets, stock.blocked_packets) == (5, 3)

    def test_retailer_cannot_execute(self, flow, orchestrator, retailer, stocked_material):
        dispatch = flow.pending_dispatch({stocked_material.material_id: (1, 0)})
        with pytest.raises(ForbiddenError):
            orchestrator.dispatch.execute(retailer, dispatch.dispatch_id)

    def test_unknown_dispatch(self, orchestrator, admin):
        with pytest.raises(NotFoundError):
            orchestrator.dispatch.execute(admin, uuid4())


class TestConfirmGRN:

    def test_full_receipt(self, flow, orchestrator, notifier, admin, retailer, stocked_material):
        mid = stocked_material.material_id
        grn = flow.confirmed_grn({mid: (10, 3)})

        assert grn.status == GRNStatus.CONFIRMED
        assert not grn.has_discrepancy
        stock = orchestrator.inventory.retailer_stock(mid, retailer.actor_id)
        assert (stock.full_packets, stock.loose_units) == (10, 3)
        assert orchestrator.dispatch.get_dispatch(grn.dispatch_id).status == DispatchStatus.DELIVERED

        [note] = notifier.of_type(NotificationType.GRN_CONFIRMED)
        assert note[0] == (admin.actor_id,)

    def test_short_receipt_is_a_discrepancy(self, flow, orchestrator, retailer, stocked_material, captured_logs):
        mid = stocked_material.material_id
        grn = flow.confirmed_grn({mid: (10, 0)}, received={mid: (9, 0)})

        assert grn.has_discrepancy
        [item] = grn.items
        assert (item.received_packets, item.received_loose_units) == (9, 0)
        assert orchestrator.inventory.retailer_stock(mid, retailer.actor_id).full_packets == 9
        assert any(r["event"] == "grn_discrepancy_recorded" for r in captured_logs())

    def test_confirm_is_logged_against_the_grn(self, flow, stocked_material, captured_logs):
        grn = flow.confirmed_grn({stocked_material.material_id: (1, 0)})
        [record] = [r for r in captured_logs() if r["event"] == "grn_confirmed"]
        assert record["use_case"] == "grn.confirm"
        assert (record["document_type"], record["document_id"]) == ("GRN", str(grn.grn_id))
        assert "document_id" not in LogContext.get_all()

    def test_loose_units_fold_into_packets(self, flow, orchestrator, retailer, stocked_material):
        mid = stocked_material.material_id
        flow.confirmed_grn({mid: (1, 0)}, received={mid: (0, 12)})
        stock = orchestrator.inventory.retailer_stock(mid, retailer.actor_id)
        assert (stock.full_packets, stock.loose_units) == (1, 2)

    def test_nothing_received(self, flow, orchestrator, retailer, stocked_material):
        mid = stocked_material.material_id
        grn = flow.confirmed_grn({mid: (1, 0)}, received={mid: (0, 0)})
        assert grn.status == GRNStatus.CONFIRMED
        assert orchestrator.inventory.retailer_stock(mid, retailer.actor_id).total_units == 0

    def test_pending_dispatch_cannot_be_received(self, flow, orchestrator, retailer, stocked_material):
        mid = stocked_material.material_id
        dispatch = flow.pending_dispatch({mid: (1, 0)})
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        with pytest.raises(InvalidStateError):
            orchestrator.grn.confirm(retailer, grn.grn_id, {mid: (1, 0)})

    def test_cannot_confirm_twice(self, flow, orchestrator, retailer, stocked_material):
        mid = stocked_material.material_id
        grn = flow.confirmed_grn({mid: (1, 0)})
        with pytest.raises(InvalidStateError):
            orchestrator.grn.confirm(retailer, grn.grn_id, {mid: (1, 0)})

    def test_other_retailer_forbidden(self, flow, orchestrator, register_party, stocked_material):
        mid = stocked_material.material_id
        dispatch = flow.in_transit({mid: (1, 0)})
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        with pytest.raises(ForbiddenError):
            orchestrator.grn.confirm(register_party(Role.RETAILER), grn.grn_id, {mid: (1, 0)})

    @pytest.mark.parametrize("shape", ["missing", "extra", "negative"])
    def test_bad_received_lines(self, flow, orchestrator, retailer, stocked_material, shape):
        mid = stocked_material.material_id
        dispatch = flow.in_transit({mid: (1, 0)})
        grn = orchestrator.grn.get_grn_for_dispatch(dispatch.dispatch_id)
        received = {
            "missing": {},
            "extra": {mid: (1, 0), uuid4(): (1, 0)},
            "negative": {mid: (-1, 0)},
        }[shape]
        with pytest.raises(InvalidArgumentError):
            orchestrator.grn.confirm(retailer, grn.grn_id, received)
        assert orchestrator.grn.get_grn(grn.grn_id).status == GRNStatus.PENDING

    def test_grn_for_unknown_dispatch(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.grn.get_grn_for_dispatch(uuid4())


class TestQueries:

    def test_list_for_manufacturer(self, flow, orchestrator, manufacturer, register_party, stocked_material):
        mid = stocked_material.material_id
        pending = flow.pending_dispatch({mid: (1, 0)})
        shipped = flow.in_transit({mid: (2, 0)})

        listed = orchestrator.dispatch.list_for_manufacturer(manufacturer.actor_id)
        assert [d.dispatch_id for d in listed] == [pending.dispatch_id, shipped.dispatch_id]
        in_transit = orchestrator.dispatch.list_for_manufacturer(manufacturer.actor_id, DispatchStatus.IN_TRANSIT)
        assert [d.dispatch_id for d in in_transit] == [shipped.dispatch_id]
        assert orchestrator.dispatch.list_for_manufacturer(register_party(Role.MANUFACTURER).actor_id) == []

    def test_list_all(self, flow, orchestrator, stocked_material):
        mid = stocked_material.material_id
        assert orchestrator.dispatch.list_all() == []
        flow.pending_dispatch({mid: (1, 0)})
        flow.confirmed_grn({mid: (1, 0)})
        assert len(orchestrator.dispatch.list_all()) == 2
        [delivered] = orchestrator.dispatch.list_all(DispatchStatus.DELIVERED)
        assert delivered.status == DispatchStatus.DELIVERED


class TestLockOrder:
    """Multi-line documents touch ledger rows in material order."""

    def test_each_stage_walks_materials_in_order(self, flow, orchestrator, manufacturer, make_material, stock_manufacturer):
        materials = sorted((make_material() for _ in range(3)), key=lambda m: m.material_id, reverse=True)
        for m in materials:
            stock_manufacturer(m.material_id, manufacturer.actor_id, 5)
        # Requested in descending material order
        lines = {m.material_id: (1, 0) for m in materials}

        grn = flow.confirmed_grn(lines)
        dispatch = orchestrator.dispatch.get_dispatch(grn.dispatch_id)

        ascending = sorted(lines)
        for reference_id in (dispatch.srn_id, dispatch.dispatch_id, grn.grn_id):
            entries = orchestrator.inventory.transactions_for_reference(reference_id)
            assert [e.material_id for e in entries] == ascending
