"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for the
    kernel's write services (ledgers, sequence, material catalog, parties).
    Services receive a SQLAlchemy ``Session`` and use ``session.flush()``,
    never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries belong to the caller.  Module use cases wrap
      every multi-step mutation in ``transaction(session)`` so a ledger
      change, its log row, and the document status change commit together.

Failure modes:
    - A subclass that commits on its own breaks the all-or-nothing
      guarantee of SRN approval and dispatch execution.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from supply_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and flushes
        changes within the active transaction.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT provide read-only queries; those live in selectors/.
    """

    def __init__(self, session: Session):
        self.session = session
