"""
Tests for RetailerLedger: receiving goods and selling loose units with
automatic packet opening.
"""

from uuid import uuid4

import pytest

from supply_kernel.db.engine import transaction
from supply_kernel.domain.dtos import LocationType, TransactionType
from supply_kernel.exceptions import (
    InsufficientInventoryError,
    InvalidArgumentError,
    NotFoundError,
)


def _sell(session, ledger, material_id, retailer_id, units, sale_id=None):
    with transaction(session):
        return ledger.sell_units(material_id, retailer_id, units, actor_id=retailer_id, sale_id=sale_id or uuid4())


class TestReceiveGoods:

    def test_adds_packets_and_units(self, stock_retailer, retailer_ledger, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 4, 3)
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (4, 3)
        assert balance.total_units == 43

    def test_loose_units_fold_into_packets(self, stock_retailer, retailer_ledger, inventory_selector, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 1, 7)
        stock_retailer(material.material_id, retailer.actor_id, 0, 5)
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (2, 2)

        last = inventory_selector.transactions(material.material_id, retailer.actor_id)[-1]
        assert last.transaction_type == TransactionType.GRN_RECEIVE
        assert (last.packets_delta, last.units_delta) == (1, -5)

    def test_zero_quantities_are_a_no_op(self, session, retailer_ledger, inventory_selector, material, retailer):
        with transaction(session):
            result = retailer_ledger.receive_goods(
                material.material_id, retailer.actor_id, 0, 0, actor_id=retailer.actor_id, grn_id=uuid4(),
            )
        assert result is None
        assert inventory_selector.transactions(material.material_id, retailer.actor_id) == []

    def test_negative_rejected(self, session, retailer_ledger, material, retailer):
        with pytest.raises(InvalidArgumentError):
            with transaction(session):
                retailer_ledger.receive_goods(
                    material.material_id, retailer.actor_id, -1, 0, actor_id=retailer.actor_id, grn_id=uuid4(),
                )

    def test_unknown_material(self, session, retailer_ledger, retailer):
        with pytest.raises(NotFoundError):
            with transaction(session):
                retailer_ledger.receive_goods(
                    uuid4(), retailer.actor_id, 1, 0, actor_id=retailer.actor_id, grn_id=uuid4(),
                )


class TestSellUnits:
    """Selling opens the minimum number of packets."""

    def test_opens_packets_for_shortfall(self, session, stock_retailer, retailer_ledger, inventory_selector, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 5)
        sale_id = uuid4()
        opened = _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 12, sale_id)

        assert opened == 2
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (3, 8)

        entries = inventory_selector.transactions_for_reference(sale_id)
        assert [e.transaction_type for e in entries] == [TransactionType.PACKET_OPEN, TransactionType.SALE]
        assert (entries[0].packets_delta, entries[0].units_delta) == (-2, 20)
        assert (entries[1].packets_delta, entries[1].units_delta) == (0, -12)

    def test_loose_stock_used_first(self, session, stock_retailer, retailer_ledger, inventory_selector, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 2, 6)
        sale_id = uuid4()
        opened = _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 6, sale_id)
        assert opened == 0
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (2, 0)
        assert len(inventory_selector.transactions_for_reference(sale_id)) == 1

    def test_exact_packet_boundary(self, session, stock_retailer, retailer_ledger, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 3, 0)
        opened = _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 20)
        assert opened == 2
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (1, 0)

    def test_sell_everything(self, session, stock_retailer, retailer_ledger, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 2, 4)
        _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 24)
        assert retailer_ledger.get_available_units(material.material_id, retailer.actor_id) == 0

    def test_insufficient_stock_changes_nothing(self, session, stock_retailer, retailer_ledger, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 1, 5)
        with pytest.raises(InsufficientInventoryError) as exc_info:
            _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 16)
        assert exc_info.value.requested_units == 16
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert (balance.full_packets, balance.loose_units) == (1, 5)

    def test_never_held(self, session, retailer_ledger, material, retailer):
        with pytest.raises(InsufficientInventoryError):
            _sell(session, retailer_ledger, material.material_id, retailer.actor_id, 1)

    @pytest.mark.parametrize("units", [0, -3, True])
    def test_bad_units(self, session, stock_retailer, retailer_ledger, material, retailer, units):
        stock_retailer(material.material_id, retailer.actor_id, 1)
        with pytest.raises(InvalidArgumentError):
            _sell(session, retailer_ledger, material.material_id, retailer.actor_id, units)

    def test_reconciles(self, session, stock_retailer, retailer_ledger, inventory_selector, material, retailer):
        stock_retailer(material.material_id, retailer.actor_id, 5, 3)
        for units in (4, 11, 9):
            _sell(session, retailer_ledger, material.material_id, retailer.actor_id, units)
        result = inventory_selector.reconcile(material.material_id, LocationType.RETAILER, retailer.actor_id)
        assert result.is_balanced
        balance = retailer_ledger.get_balance(material.material_id, retailer.actor_id)
        assert balance.total_units == 53 - 24
