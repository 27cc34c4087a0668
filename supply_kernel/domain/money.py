"""
Money -- Fixed-precision arithmetic and the pricing / tax / commission formulas.

Responsibility:
    Every monetary figure in the system (unit price, dispatch line total,
    invoice subtotal, GST components, sale total, commission) is produced by
    a ``MoneyEngine``.  The engine holds an explicit ``RoundingPolicy``;
    there is no process-wide decimal context.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Depends only on
    ``supply_kernel.db.types.round_money`` and the exception hierarchy.

Invariants enforced:
    - Values are ``Decimal`` end to end.  ``float`` is rejected at the
      boundary (``to_money``), as are booleans.
    - Every arithmetic operation rounds its own result to the policy
      (default: 2 places, ROUND_HALF_UP).  Chained formulas therefore round
      at each step, in a fixed order.
    - Comparisons operate on rounded values.
    - Division by zero raises ``InvalidArgumentError``.

Failure modes:
    - InvalidArgumentError on float/bool/non-numeric input, zero divisor,
      non-positive units-per-packet, or negative quantity.

Audit relevance:
    Dispatch lines, invoices, sales, and commissions persist the engine's
    output.  Recomputing with the same policy and inputs reproduces the
    stored figures exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
    Decimal,
    InvalidOperation,
)
from enum import Enum
from typing import Iterable

from supply_kernel.db.types import round_money
from supply_kernel.exceptions import InvalidArgumentError

ROUNDING_MODES = frozenset({
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
})

_HUNDRED = Decimal("100")
_TWO = Decimal("2")


class CommissionType(str, Enum):
    """How a material's commission accrues on a retail sale."""

    PERCENTAGE = "PERCENTAGE"
    FLAT_PER_UNIT = "FLAT_PER_UNIT"


class GstBlending(str, Enum):
    """How a single invoice-level GST rate is derived from line rates."""

    WEIGHTED = "weighted"
    SIMPLE_AVERAGE = "simple_average"


@dataclass(frozen=True)
class RoundingPolicy:
    """
    Decimal places and rounding mode applied at every arithmetic boundary.

    Guarantees: ``rounding`` is one of the ``decimal`` module's modes and
    ``decimal_places`` is non-negative.
    """

    decimal_places: int = 2
    rounding: str = ROUND_HALF_UP

    def __post_init__(self) -> None:
        if self.decimal_places < 0:
            raise ValueError("decimal_places must be >= 0")
        if self.rounding not in ROUNDING_MODES:
            raise ValueError(f"rounding must be one of {sorted(ROUNDING_MODES)}")


@dataclass(frozen=True)
class CommissionPolicy:
    """A material's commission rule: percent of sale value, or flat per unit."""

    commission_type: CommissionType
    value: Decimal

    def __post_init__(self) -> None:
        if self.value < 0:
            raise InvalidArgumentError("commission_value", "must be >= 0")
        if self.commission_type == CommissionType.PERCENTAGE and self.value > _HUNDRED:
            raise InvalidArgumentError("commission_value", "percentage must be <= 100")


@dataclass(frozen=True)
class GstBreakdown:
    """
    Tax components for one subtotal.

    Exactly one regime is populated: cgst/sgst (intrastate) or igst
    (interstate).  The other components are zero.
    """

    subtotal: Decimal
    gst_rate: Decimal
    is_interstate: bool
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total: Decimal


class MoneyEngine:
    """
    Policy-bound decimal arithmetic and domain formulas.

    Contract:
        Inputs may be ``Decimal``, ``int`` or numeric ``str``.  Outputs are
        ``Decimal`` rounded to ``policy.decimal_places``.

    Guarantees:
        - Deterministic: same policy + same inputs -> same outputs.
        - No floating point anywhere.

    Non-goals:
        - No currency handling; all amounts share one implicit currency.
    """

    def __init__(self, policy: RoundingPolicy | None = None):
        self._policy = policy or RoundingPolicy()

    @property
    def policy(self) -> RoundingPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    def to_decimal(self, value: Decimal | int | str, field: str = "amount") -> Decimal:
        """Exact conversion without rounding; rejects float and bool."""
        if isinstance(value, bool) or isinstance(value, float):
            raise InvalidArgumentError(field, f"{type(value).__name__} is not an exact decimal")
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise InvalidArgumentError(field, "must be finite")
            return value
        if isinstance(value, (int, str)):
            try:
                result = Decimal(str(value).strip())
            except InvalidOperation as exc:
                raise InvalidArgumentError(field, f"not a number: {value!r}") from exc
            if not result.is_finite():
                raise InvalidArgumentError(field, "must be finite")
            return result
        raise InvalidArgumentError(field, f"unsupported type {type(value).__name__}")

    def round(self, value: Decimal) -> Decimal:
        return round_money(
            value,
            decimal_places=self._policy.decimal_places,
            rounding=self._policy.rounding,
        )

    def to_money(self, value: Decimal | int | str, field: str = "amount") -> Decimal:
        """Convert and round to the policy."""
        return self.round(self.to_decimal(value, field))

    def zero(self) -> Decimal:
        return self.round(Decimal(0))

    def to_storage_string(self, value: Decimal | int | str) -> str:
        """Fixed-point string with exactly ``decimal_places`` places."""
        return f"{self.to_money(value):.{self._policy.decimal_places}f}"

    # ------------------------------------------------------------------
    # Arithmetic (each operation rounds its own result)
    # ------------------------------------------------------------------

    def add(self, a, b) -> Decimal:
        return self.round(self.to_decimal(a) + self.to_decimal(b))

    def subtract(self, a, b) -> Decimal:
        return self.round(self.to_decimal(a) - self.to_decimal(b))

    def multiply(self, a, b) -> Decimal:
        return self.round(self.to_decimal(a) * self.to_decimal(b))

    def divide(self, a, b) -> Decimal:
        divisor = self.to_decimal(b, "divisor")
        if divisor == 0:
            raise InvalidArgumentError("divisor", "division by zero")
        return self.round(self.to_decimal(a) / divisor)

    def percentage(self, amount, percent) -> Decimal:
        """round(amount * percent / 100)"""
        return self.round(self.to_decimal(amount) * self.to_decimal(percent, "percent") / _HUNDRED)

    def sum(self, values: Iterable) -> Decimal:
        total = self.zero()
        for value in values:
            total = self.add(total, value)
        return total

    # ------------------------------------------------------------------
    # Comparison (on rounded values)
    # ------------------------------------------------------------------

    def equals(self, a, b) -> bool:
        return self.to_money(a) == self.to_money(b)

    def greater_than(self, a, b) -> bool:
        return self.to_money(a) > self.to_money(b)

    def less_than(self, a, b) -> bool:
        return self.to_money(a) < self.to_money(b)

    def is_zero(self, value) -> bool:
        return self.to_money(value) == 0

    def is_positive(self, value) -> bool:
        return self.to_money(value) > 0

    # ------------------------------------------------------------------
    # Domain formulas
    # ------------------------------------------------------------------

    def unit_price(self, mrp_per_packet, units_per_packet: int) -> Decimal:
        """
        Price of one loose unit.

        Raises:
            InvalidArgumentError: If units_per_packet <= 0.
        """
        if isinstance(units_per_packet, bool) or units_per_packet <= 0:
            raise InvalidArgumentError("units_per_packet", "must be a positive integer")
        return self.divide(mrp_per_packet, units_per_packet)

    def line_total(self, unit_price, quantity: int) -> Decimal:
        """
        round(unit_price * quantity); negative quantity rejected.
        """
        if quantity < 0:
            raise InvalidArgumentError("quantity", "must be >= 0")
        return self.multiply(unit_price, quantity)

    def packet_line_total(
        self,
        mrp_per_packet,
        units_per_packet: int,
        packets: int,
        loose_units: int,
    ) -> Decimal:
        """Whole packets at MRP plus loose units at the derived unit price."""
        price = self.unit_price(mrp_per_packet, units_per_packet)
        return self.add(
            self.line_total(mrp_per_packet, packets),
            self.line_total(price, loose_units),
        )

    def gst_split(self, subtotal, gst_rate, is_interstate: bool) -> GstBreakdown:
        """
        Split GST for a subtotal.

        Intrastate: CGST = SGST = round(subtotal * rate/2 / 100), IGST = 0.
        Interstate: IGST = round(subtotal * rate / 100), CGST = SGST = 0.
        """
        base = self.to_money(subtotal, "subtotal")
        rate = self.to_decimal(gst_rate, "gst_rate")
        if rate < 0:
            raise InvalidArgumentError("gst_rate", "must be >= 0")
        zero = self.zero()
        if is_interstate:
            cgst = sgst = zero
            igst = self.percentage(base, rate)
        else:
            cgst = self.percentage(base, rate / _TWO)
            sgst = self.percentage(base, rate / _TWO)
            igst = zero
        total_tax = self.sum((cgst, sgst, igst))
        return GstBreakdown(
            subtotal=base,
            gst_rate=rate,
            is_interstate=is_interstate,
            cgst=cgst,
            sgst=sgst,
            igst=igst,
            total_tax=total_tax,
            total=self.add(base, total_tax),
        )

    def commission(self, policy: CommissionPolicy, unit_price, units_sold: int) -> Decimal:
        """
        PERCENTAGE: percentage(unit_price * units, value).
        FLAT_PER_UNIT: value * units.
        """
        if units_sold < 0:
            raise InvalidArgumentError("units_sold", "must be >= 0")
        if policy.commission_type == CommissionType.PERCENTAGE:
            return self.percentage(self.multiply(unit_price, units_sold), policy.value)
        return self.multiply(policy.value, units_sold)

    def blended_gst_rate(
        self,
        lines: Iterable[tuple[Decimal, Decimal]],
        blending: GstBlending = GstBlending.WEIGHTED,
        places: int | None = 4,
    ) -> Decimal:
        """
        One rate for a set of (line_total, gst_rate) pairs.

        WEIGHTED: sum(line_total * rate) / sum(line_total), so GST on the
        subtotal equals the per-line GST before rounding.  A zero subtotal
        falls back to the simple mean.
        SIMPLE_AVERAGE: mean of the line rates.
        ``places=None`` returns the unrounded rate for tax computation.
        """
        pairs = [(self.to_decimal(t), self.to_decimal(r, "gst_rate")) for t, r in lines]
        if not pairs:
            raise InvalidArgumentError("lines", "at least one line is required")
        weight = sum((t for t, _ in pairs), Decimal(0))
        if blending == GstBlending.WEIGHTED and weight != 0:
            rate = sum((t * r for t, r in pairs), Decimal(0)) / weight
        else:
            rate = sum((r for _, r in pairs), Decimal(0)) / Decimal(len(pairs))
        if places is None:
            return rate
        return round_money(rate, decimal_places=places, rounding=ROUND_HALF_UP)
