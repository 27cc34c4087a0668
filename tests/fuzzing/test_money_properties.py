"""
Property-based tests for the money engine.

Amounts are generated at two decimal places so every property is checked
on values the ledger can actually store.
"""

from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from supply_kernel.domain.money import CommissionPolicy, CommissionType, MoneyEngine

money = MoneyEngine()

amounts = st.decimals(min_value=Decimal("0.00"), max_value=Decimal("9999999.99"), places=2)
rates = st.decimals(min_value=Decimal("0"), max_value=Decimal("28"), places=2)
units_per_packet = st.integers(1, 500)


class TestGstSplitProperties:

    @given(subtotal=amounts, rate=rates, interstate=st.booleans())
    def test_total_is_subtotal_plus_tax(self, subtotal, rate, interstate):
        gst = money.gst_split(subtotal, rate, is_interstate=interstate)
        assert gst.total == gst.subtotal + gst.total_tax
        assert gst.total_tax == gst.cgst + gst.sgst + gst.igst

    @given(subtotal=amounts, rate=rates)
    def test_one_regime_only(self, subtotal, rate):
        intra = money.gst_split(subtotal, rate, is_interstate=False)
        inter = money.gst_split(subtotal, rate, is_interstate=True)
        assert intra.igst == 0
        assert intra.cgst == intra.sgst
        assert inter.cgst == inter.sgst == 0

    @given(subtotal=amounts, rate=rates)
    def test_regimes_differ_by_at_most_a_paisa(self, subtotal, rate):
        intra = money.gst_split(subtotal, rate, is_interstate=False)
        inter = money.gst_split(subtotal, rate, is_interstate=True)
        assert abs(intra.total_tax - inter.total_tax) <= Decimal("0.01")


class TestUnitPriceProperties:

    @given(mrp=amounts.filter(lambda a: a > 0), upp=units_per_packet)
    def test_packet_rebuilt_within_rounding(self, mrp, upp):
        unit = money.unit_price(mrp, upp)
        assert unit.as_tuple().exponent == -2
        assert abs(unit * upp - mrp) <= Decimal("0.005") * upp

    @given(mrp=amounts.filter(lambda a: a > 0), upp=st.integers(1, 2))
    def test_small_packets_rebuilt_within_a_cent(self, mrp, upp):
        unit = money.unit_price(mrp, upp)
        assert abs(unit * upp - mrp) <= Decimal("0.01")

    @given(unit_cents=st.integers(1, 999999), upp=units_per_packet)
    def test_even_split_rebuilt_within_a_cent(self, unit_cents, upp):
        mrp = Decimal(unit_cents * upp) / 100
        unit = money.unit_price(mrp, upp)
        assert abs(unit * upp - mrp) <= Decimal("0.01")

    def test_wide_packets_can_drift_past_a_cent(self):
        unit = money.unit_price(Decimal("1.00"), 1000)
        assert unit == Decimal("0.00")
        assert abs(unit * 1000 - Decimal("1.00")) > Decimal("0.01")


class TestCommissionProperties:

    @given(
        value=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
        unit=amounts,
        units=st.integers(1, 1000),
    )
    def test_percentage_never_exceeds_sale(self, value, unit, units):
        policy = CommissionPolicy(CommissionType.PERCENTAGE, value)
        earned = money.commission(policy, unit, units)
        assert Decimal("0") <= earned <= money.line_total(unit, units)

    @given(value=amounts, unit=amounts, units=st.integers(1, 1000))
    def test_flat_ignores_price(self, value, unit, units):
        policy = CommissionPolicy(CommissionType.FLAT_PER_UNIT, value)
        assert money.commission(policy, unit, units) == money.commission(policy, Decimal("1.00"), units)


class TestBlendedRateProperties:

    @given(st.lists(st.tuples(amounts, rates), min_size=1, max_size=8))
    def test_rate_stays_within_line_rates(self, lines):
        blended = money.blended_gst_rate(lines, places=None)
        line_rates = [rate for _, rate in lines]
        assert min(line_rates) <= blended <= max(line_rates)
