"""Pure domain core: money engine, clock, workflow and access values, DTOs."""

from supply_kernel.domain.access import Actor, Role, require_owner, require_role
from supply_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from supply_kernel.domain.money import (
    CommissionPolicy,
    CommissionType,
    GstBlending,
    GstBreakdown,
    MoneyEngine,
    RoundingPolicy,
)
from supply_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Actor",
    "Role",
    "require_owner",
    "require_role",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CommissionPolicy",
    "CommissionType",
    "GstBlending",
    "GstBreakdown",
    "MoneyEngine",
    "RoundingPolicy",
    "Transition",
    "Workflow",
]
