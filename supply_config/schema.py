"""
SupplyConfig schema.

Frozen dataclasses for the runtime configuration.  The loader parses
``supply.yaml`` into these types; each section validates itself in
``__post_init__`` so an invalid file fails at load time, never at first
use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
)
from types import MappingProxyType
from typing import Mapping

_ROUNDING_MODES = frozenset({
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
})

_GST_BLENDING_MODES = frozenset({"weighted", "simple_average"})

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Document kind -> default prefix.  These literals are part of the
# document number contract.
DEFAULT_PREFIXES: Mapping[str, str] = MappingProxyType({
    "srn": "SRN",
    "dispatch": "DO",
    "grn": "GRN",
    "invoice": "INV",
    "sale": "SALE",
    "batch": "BATCH",
    "return": "RET",
})


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoneyConfig:
    """Rounding applied by the money engine."""

    decimal_places: int = 2
    rounding: str = ROUND_HALF_UP

    def __post_init__(self) -> None:
        if isinstance(self.decimal_places, bool) or not isinstance(self.decimal_places, int):
            raise ValueError("money.decimal_places must be an integer")
        if self.decimal_places < 0:
            raise ValueError("money.decimal_places must be >= 0")
        if self.rounding not in _ROUNDING_MODES:
            raise ValueError(
                f"money.rounding must be one of {sorted(_ROUNDING_MODES)}, got {self.rounding!r}"
            )


@dataclass(frozen=True)
class SequenceConfig:
    """Document number formatting."""

    pad_width: int = 6
    prefixes: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PREFIXES))

    def __post_init__(self) -> None:
        if isinstance(self.pad_width, bool) or not isinstance(self.pad_width, int):
            raise ValueError("sequence.pad_width must be an integer")
        if self.pad_width < 1:
            raise ValueError("sequence.pad_width must be >= 1")
        unknown = set(self.prefixes) - set(DEFAULT_PREFIXES)
        if unknown:
            raise ValueError(f"sequence.prefixes has unknown document kinds: {sorted(unknown)}")
        for kind, prefix in self.prefixes.items():
            if not isinstance(prefix, str) or not prefix or "-" in prefix:
                raise ValueError(f"sequence.prefixes.{kind} must be a non-empty string without '-'")
        values = list(self.prefixes.values())
        if len(set(values)) != len(values):
            raise ValueError("sequence.prefixes must be distinct")

    def prefix_for(self, kind: str) -> str:
        return self.prefixes.get(kind, DEFAULT_PREFIXES[kind])


@dataclass(frozen=True)
class InvoiceConfig:
    """How the invoice-level GST rate is derived from line rates."""

    gst_blending: str = "weighted"

    def __post_init__(self) -> None:
        if self.gst_blending not in _GST_BLENDING_MODES:
            raise ValueError(
                f"invoice.gst_blending must be one of {sorted(_GST_BLENDING_MODES)}"
            )


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite://"
    echo: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must be non-empty")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SupplyConfig:
    """The complete runtime configuration, identified by its checksum."""

    config_id: str
    version: int
    money: MoneyConfig = field(default_factory=MoneyConfig)
    sequence: SequenceConfig = field(default_factory=SequenceConfig)
    invoice: InvoiceConfig = field(default_factory=InvoiceConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
