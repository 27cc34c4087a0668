"""
Tests for ManufacturerLedger.

Covers production intake, blocking, release, dispatch execution, restock,
the blocked <= full invariant, and the transaction log that mirrors every
balance change.
"""

from uuid import uuid4

import pytest
from sqlalchemy import event

from supply_kernel.db.engine import transaction
from supply_kernel.domain.dtos import LocationType, ReferenceType, TransactionType
from supply_kernel.exceptions import (
    ImmutabilityViolationError,
    InsufficientBlockedError,
    InsufficientInventoryError,
    InvalidArgumentError,
)
from supply_kernel.models.inventory import InventoryTransaction


class TestAddProduction:

    def test_creates_row_and_logs(self, session, manufacturer_ledger, inventory_selector, material, manufacturer):
        batch_id = uuid4()
        with transaction(session):
            stock = manufacturer_ledger.add_production(
                material.material_id, manufacturer.actor_id, 15, 4,
                actor_id=manufacturer.actor_id, reference_id=batch_id, notes="first run",
            )
        assert (stock.full_packets, stock.loose_units) == (15, 4)
        assert (stock.blocked_packets, stock.blocked_loose_units) == (0, 0)

        entries = inventory_selector.transactions(material.material_id, manufacturer.actor_id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.transaction_type == TransactionType.PRODUCTION
        assert entry.location_type == LocationType.MANUFACTURER
        assert entry.reference_type == ReferenceType.PRODUCTION
        assert entry.reference_id == batch_id
        assert (entry.packets_delta, entry.units_delta) == (15, 4)
        assert (entry.packets_after, entry.units_after) == (15, 4)
        assert entry.notes == "first run"

    def test_accumulates(self, stock_manufacturer, manufacturer_ledger, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 5)
        stock_manufacturer(material.material_id, manufacturer.actor_id, 3, 2)
        stock = manufacturer_ledger.get_stock(material.material_id, manufacturer.actor_id)
        assert (stock.full_packets, stock.loose_units) == (8, 2)

    @pytest.mark.parametrize("packets, loose", [(0, 0), (-1, 0), (0, -1)])
    def test_bad_quantities(self, session, manufacturer_ledger, material, manufacturer, packets, loose):
        with pytest.raises(InvalidArgumentError):
            with transaction(session):
                manufacturer_ledger.add_production(
                    material.material_id, manufacturer.actor_id, packets, loose,
                    actor_id=manufacturer.actor_id, reference_id=None,
                )


class TestBlockForDispatch:

    def test_block_reduces_availability_only(self, session, stock_manufacturer, manufacturer_ledger, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 15, 5)
        with transaction(session):
            stock = manufacturer_ledger.block_for_dispatch(
                material.material_id, manufacturer.actor_id, 10, 2,
                actor_id=manufacturer.actor_id, srn_id=uuid4(),
            )
        assert stock.full_packets == 15
        assert stock.blocked_packets == 10
        assert stock.available_packets == 5
        assert stock.available_loose_units == 3
        assert manufacturer_ledger.get_available(material.material_id, manufacturer.actor_id) == (5, 3)

    def test_over_block_refused(self, session, stock_manufacturer, manufacturer_ledger, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 15)
        with pytest.raises(InsufficientInventoryError) as exc_info:
            with transaction(session):
                manufacturer_ledger.block_for_dispatch(
                    material.material_id, manufacturer.actor_id, 20, 0,
                    actor_id=manufacturer.actor_id, srn_id=uuid4(),
                )
        assert exc_info.value.requested_packets == 20
        assert exc_info.value.available_packets == 15
        stock = manufacturer_ledger.get_stock(material.material_id, manufacturer.actor_id)
        assert stock.blocked_packets == 0

    def test_blocked_stock_is_not_available_twice(self, session, stock_manufacturer, manufacturer_ledger, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 10)
        with transaction(session):
            manufacturer_ledger.block_for_dispatch(
                material.material_id, manufacturer.actor_id, 7, 0,
                actor_id=manufacturer.actor_id, srn_id=uuid4(),
            )
        with pytest.raises(InsufficientInventoryError):
            with transaction(session):
                manufacturer_ledger.block_for_dispatch(
                    material.material_id, manufacturer.actor_id, 4, 0,
                    actor_id=manufacturer.actor_id, srn_id=uuid4(),
                )

    def test_no_row_means_nothing_available(self, session, manufacturer_ledger, material, manufacturer):
        with pytest.raises(InsufficientInventoryError) as exc_info:
            with transaction(session):
                manufacturer_ledger.block_for_dispatch(
                    material.material_id, manufacturer.actor_id, 1, 0,
                    actor_id=manufacturer.actor_id, srn_id=uuid4(),
                )
        assert exc_info.value.available_packets == 0


class TestReleaseAndExecute:

    @pytest.fixture
    def blocked(self, session, stock_manufacturer, manufacturer_ledger, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 10, 4)
        with transaction(session):
            manufacturer_ledger.block_for_dispatch(
                material.material_id, manufacturer.actor_id, 5, 2,
                actor_id=manufacturer.actor_id, srn_id=uuid4(),
            )

    def test_release_returns_to_available(self, session, blocked, manufacturer_ledger, material, manufacturer):
        with transaction(session):
            stock = manufacturer_ledger.release_block(
                material.material_id, manufacturer.actor_id, 3, 1,
                actor_id=manufacturer.actor_id, srn_id=uuid4(),
            )
        assert (stock.full_packets, stock.blocked_packets) == (10, 2)
        assert (stock.loose_units, stock.blocked_loose_units) == (4, 1)

    def test_execute_reduces_full_and_blocked(self, session, blocked, manufacturer_ledger, inventory_selector, material, manufacturer):
        dispatch_id = uuid4()
        with transaction(session):
            stock = manufacturer_ledger.execute_dispatch(
                material.material_id, manufacturer.actor_id, 5, 2,
                actor_id=manufacturer.actor_id, dispatch_id=dispatch_id,
            )
        assert (stock.full_packets, stock.blocked_packets) == (5, 0)
        assert (stock.loose_units, stock.blocked_loose_units) == (2, 0)

        entry = inventory_selector.transactions_for_reference(dispatch_id)[0]
        assert entry.transaction_type == TransactionType.DISPATCH_EXECUTE
        assert (entry.packets_delta, entry.blocked_packets_delta) == (-5, -5)

    def test_execute_beyond_block_has_no_effect(self, session, blocked, manufacturer_ledger, inventory_selector, material, manufacturer):
        before = inventory_selector.transactions(material.material_id, manufacturer.actor_id)
        with pytest.raises(InsufficientBlockedError) as exc_info:
            with transaction(session):
                manufacturer_ledger.execute_dispatch(
                    material.material_id, manufacturer.actor_id, 6, 0,
                    actor_id=manufacturer.actor_id, dispatch_id=uuid4(),
                )
        assert exc_info.value.blocked_packets == 5
        stock = manufacturer_ledger.get_stock(material.material_id, manufacturer.actor_id)
        assert (stock.full_packets, stock.blocked_packets) == (10, 5)
        assert inventory_selector.transactions(material.material_id, manufacturer.actor_id) == before

    def test_release_beyond_block_refused(self, session, blocked, manufacturer_ledger, material, manufacturer):
        with pytest.raises(InsufficientBlockedError):
            with transaction(session):
                manufacturer_ledger.release_block(
                    material.material_id, manufacturer.actor_id, 0, 3,
                    actor_id=manufacturer.actor_id, srn_id=uuid4(),
                )


class TestRestock:

    def test_restock_creates_row_when_missing(self, session, manufacturer_ledger, material, manufacturer):
        return_id = uuid4()
        with transaction(session):
            stock = manufacturer_ledger.restock_from_return(
                material.material_id, manufacturer.actor_id, 2, 3,
                actor_id=manufacturer.actor_id, return_id=return_id,
            )
        assert (stock.full_packets, stock.loose_units) == (2, 3)


class TestTransactionLog:
    """The log is append-only and reconciles with the stored balance."""

    def test_reconciles_after_mixed_operations(self, session, stock_manufacturer, manufacturer_ledger, inventory_selector, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 12, 6)
        with transaction(session):
            srn_id = uuid4()
            manufacturer_ledger.block_for_dispatch(
                material.material_id, manufacturer.actor_id, 8, 3,
                actor_id=manufacturer.actor_id, srn_id=srn_id,
            )
            manufacturer_ledger.release_block(
                material.material_id, manufacturer.actor_id, 2, 0,
                actor_id=manufacturer.actor_id, srn_id=srn_id,
            )
            manufacturer_ledger.execute_dispatch(
                material.material_id, manufacturer.actor_id, 6, 3,
                actor_id=manufacturer.actor_id, dispatch_id=uuid4(),
            )
        result = inventory_selector.reconcile(
            material.material_id, LocationType.MANUFACTURER, manufacturer.actor_id,
        )
        assert result.is_balanced
        assert result.entry_count == 4
        assert (result.stored_packets, result.stored_units) == (6, 3)

    def test_seq_strictly_increasing(self, session, stock_manufacturer, inventory_selector, material, manufacturer):
        for _ in range(3):
            stock_manufacturer(material.material_id, manufacturer.actor_id, 1)
        seqs = [e.seq for e in inventory_selector.transactions(material.material_id, manufacturer.actor_id)]
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == 3

    def test_writes_take_no_shared_counter(
        self, session, manufacturer_ledger, retailer_ledger, make_material, material, manufacturer, retailer,
    ):
        other = make_material(sq_code="SQ-OTHER")
        engine = session.get_bind().engine
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", record)
        try:
            with transaction(session):
                manufacturer_ledger.add_production(
                    material.material_id, manufacturer.actor_id, 3, 0,
                    actor_id=manufacturer.actor_id, reference_id=uuid4(),
                )
            with transaction(session):
                retailer_ledger.receive_goods(
                    other.material_id, retailer.actor_id, 1, 0, retailer.actor_id, uuid4(),
                )
        finally:
            event.remove(engine, "before_cursor_execute", record)

        assert any("inventory_transactions" in s for s in statements)
        assert not any("sequence_counters" in s for s in statements)

    def test_rows_cannot_be_updated(self, session, stock_manufacturer, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 1)
        row = session.query(InventoryTransaction).first()
        row.packets_delta = 99
        with pytest.raises(ImmutabilityViolationError):
            with transaction(session):
                session.flush()

    def test_rows_cannot_be_deleted(self, session, stock_manufacturer, material, manufacturer):
        stock_manufacturer(material.material_id, manufacturer.actor_id, 1)
        row = session.query(InventoryTransaction).first()
        with pytest.raises(ImmutabilityViolationError):
            with transaction(session):
                session.delete(row)
                session.flush()
