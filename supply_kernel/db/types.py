"""
Module: supply_kernel.db.types
Responsibility: Column type constants and the rounding primitive for money
    and quantity columns.  Centralizes precision so every model and the money
    engine use identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money columns are Numeric(38, 2); GST rates are Numeric(9, 4).
    - round_money() is the only rounding function; MoneyEngine delegates to it.
    - No floats.  Quantities are integers.
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Numeric, String

# Monetary amount, two decimal places (the Decimal default in Base)
MoneyType = Numeric(38, 2)

# Percentage rate (GST, commission value)
RateType = Numeric(9, 4)

# Human-readable document number (PREFIX-YYYYMMDD-NNNNNN)
DocumentNumberType = String(40)

# Notes and descriptions
NotesType = String(2000)


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized to ``decimal_places`` using
        ``rounding``.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
