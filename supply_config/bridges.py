"""
Config -> Kernel Bridges.

Functions that convert a ``SupplyConfig`` into kernel-compatible inputs.
These live in supply_config (the producer) because the kernel must never
import supply_config.

Usage:
    from supply_config.bridges import build_money_engine, build_sequence_service

    config = get_active_config()
    money = build_money_engine(config)
    sequences = build_sequence_service(session, config, clock)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from supply_config.schema import SupplyConfig
from supply_kernel.domain.clock import Clock
from supply_kernel.domain.money import GstBlending, MoneyEngine, RoundingPolicy
from supply_kernel.logging_config import configure_logging
from supply_kernel.services.sequence_service import SequenceService

# Document kind in config -> default prefix used by SequenceService callers
_KIND_TO_DEFAULT = {
    "srn": SequenceService.SRN,
    "dispatch": SequenceService.DISPATCH,
    "grn": SequenceService.GRN,
    "invoice": SequenceService.INVOICE,
    "sale": SequenceService.SALE,
    "batch": SequenceService.BATCH,
    "return": SequenceService.RETURN,
}


def build_rounding_policy(config: SupplyConfig) -> RoundingPolicy:
    return RoundingPolicy(
        decimal_places=config.money.decimal_places,
        rounding=config.money.rounding,
    )


def build_money_engine(config: SupplyConfig) -> MoneyEngine:
    return MoneyEngine(build_rounding_policy(config))


def build_sequence_prefixes(config: SupplyConfig) -> dict[str, str]:
    """Map each default prefix to the configured one."""
    return {
        default: config.sequence.prefix_for(kind)
        for kind, default in _KIND_TO_DEFAULT.items()
    }


def build_sequence_service(
    session: Session,
    config: SupplyConfig,
    clock: Clock | None = None,
) -> SequenceService:
    return SequenceService(
        session,
        clock,
        pad_width=config.sequence.pad_width,
        prefixes=build_sequence_prefixes(config),
    )


def gst_blending_from_config(config: SupplyConfig) -> GstBlending:
    return GstBlending(config.invoice.gst_blending)


def configure_logging_from_config(config: SupplyConfig, **handler_options) -> bool:
    """Attach the JSON log handler at the configured ``logging.level``."""
    return configure_logging(level=config.logging.level, **handler_options)
