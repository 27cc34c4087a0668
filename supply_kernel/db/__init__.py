"""Database layer - engine, base classes, types, and immutability."""

from supply_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from supply_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
    transaction,
)
from supply_kernel.db.types import MoneyType, RateType, round_money

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "session_scope",
    "transaction",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "MoneyType",
    "RateType",
    "round_money",
]
