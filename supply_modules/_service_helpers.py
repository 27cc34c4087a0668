"""
Shared helpers for module use cases.

Used by supply_modules/*/service.py to reduce duplication around the
transaction boundary, the notification outbox, and locked document reads.

Architecture: Modules layer.  Imports only from supply_kernel.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.base import Base
from supply_kernel.db.engine import transaction
from supply_kernel.domain.access import Actor
from supply_kernel.exceptions import NotFoundError
from supply_kernel.logging_config import LogContext
from supply_kernel.services.notification_service import (
    NotificationOutbox,
    Notifier,
    deliver_outbox,
)

ModelType = TypeVar("ModelType", bound=Base)


@contextmanager
def use_case(
    session: Session,
    actor: Actor,
    notifier: Notifier | None,
    name: str,
) -> Generator[NotificationOutbox, None, None]:
    """
    One atomic use case with a post-commit notification outbox.

    The body runs inside ``transaction(session)``.  Messages added to the
    yielded outbox are delivered only after the commit succeeds; if the
    body raises, the transaction rolls back and the outbox is dropped.

    Every line logged inside the block carries ``use_case=name`` and the
    actor's id and role; ``lock_for_update`` adds the document it locks.

    Usage:
        with use_case(session, actor, notifier, "srn.submit") as outbox:
            ...
            outbox.add(admin_ids, NotificationType.SRN_SUBMITTED, ...)
    """
    outbox = NotificationOutbox()
    with LogContext.bind(use_case=name, actor_id=actor.actor_id, actor_role=actor.role):
        with transaction(session):
            yield outbox
        deliver_outbox(outbox, notifier)


def lock_for_update(
    session: Session,
    model_cls: type[ModelType],
    entity_id: UUID,
    entity_type: str,
) -> ModelType:
    """
    Load a document row with ``SELECT ... FOR UPDATE``.

    Raises:
        NotFoundError: No row with ``entity_id``.
    """
    row = session.execute(
        select(model_cls)
        .where(model_cls.id == entity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if row is None:
        raise NotFoundError(entity_type, str(entity_id))
    # The first document a use case locks is the one it acts on
    if "document_id" not in LogContext.get_all():
        LogContext.document(entity_type, entity_id)
    return row


def load(
    session: Session,
    model_cls: type[ModelType],
    entity_id: UUID,
    entity_type: str,
) -> ModelType:
    """Plain read; raises NotFoundError when missing."""
    row = session.get(model_cls, entity_id)
    if row is None:
        raise NotFoundError(entity_type, str(entity_id))
    return row
