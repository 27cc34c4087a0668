"""
Notification outbox -- outbound messages collected inside a use case and
delivered after it commits.

Responsibility:
    Use cases append ``OutboundNotification`` values to a
    ``NotificationOutbox`` while their transaction is open.  Once the
    transaction commits, ``deliver_outbox`` hands each message to a
    ``Notifier``.  The default ``StoredNotifier`` writes the in-app inbox.

Architecture position:
    Kernel > Services.  Module services own an outbox per call; the
    Notifier is injected so callers can substitute their own transport.

Invariants enforced:
    - Delivery never shares the inventory transaction.  A failed delivery
      rolls back only the notification unit and is logged, never raised.
    - A use case that fails discards its outbox undelivered.

Audit relevance:
    Every delivery and every delivery failure is logged with the
    notification type and reference id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.engine import transaction
from supply_kernel.exceptions import NotFoundError
from supply_kernel.logging_config import get_logger
from supply_kernel.models.notification import NotificationModel

logger = get_logger("services.notification")


class NotificationType(str, Enum):
    SRN_SUBMITTED = "SRN_SUBMITTED"
    SRN_APPROVED = "SRN_APPROVED"
    SRN_REJECTED = "SRN_REJECTED"
    DISPATCH_CREATED = "DISPATCH_CREATED"
    DISPATCH_EXECUTED = "DISPATCH_EXECUTED"
    GRN_CONFIRMED = "GRN_CONFIRMED"
    RETURN_RAISED = "RETURN_RAISED"
    RETURN_RESOLVED = "RETURN_RESOLVED"


@dataclass(frozen=True)
class OutboundNotification:
    """One message addressed to one or more parties."""

    recipient_ids: tuple[UUID, ...]
    notification_type: NotificationType
    title: str
    message: str
    reference_id: UUID | None = None


@dataclass
class NotificationOutbox:
    """Messages queued by a single use case, in emission order."""

    messages: list[OutboundNotification] = field(default_factory=list)

    def add(
        self,
        recipient_ids,
        notification_type: NotificationType,
        title: str,
        message: str,
        reference_id: UUID | None = None,
    ) -> None:
        recipients = tuple(dict.fromkeys(r for r in recipient_ids if r is not None))
        if not recipients:
            return
        self.messages.append(
            OutboundNotification(
                recipient_ids=recipients,
                notification_type=notification_type,
                title=title,
                message=message,
                reference_id=reference_id,
            )
        )

    def __len__(self) -> int:
        return len(self.messages)


class Notifier(ABC):
    """Delivery port.  Implementations decide the transport."""

    @abstractmethod
    def notify(
        self,
        user_ids: tuple[UUID, ...],
        notification_type: NotificationType,
        title: str,
        message: str,
        reference_id: UUID | None,
    ) -> None:
        ...


class StoredNotifier(Notifier):
    """
    Writes one inbox row per recipient and commits them as their own unit.

    Guarantees:
        - Failures roll back only the inbox rows and are logged as
          ``notification_delivery_failed``.
    """

    def __init__(self, session: Session):
        self._session = session

    def notify(
        self,
        user_ids: tuple[UUID, ...],
        notification_type: NotificationType,
        title: str,
        message: str,
        reference_id: UUID | None,
    ) -> None:
        with transaction(self._session):
            for user_id in user_ids:
                self._session.add(
                    NotificationModel(
                        user_id=user_id,
                        notification_type=NotificationType(notification_type).value,
                        title=title,
                        message=message,
                        reference_id=reference_id,
                        is_read=False,
                        created_by_id=user_id,
                    )
                )
            self._session.flush()

    def mark_read(self, user_id: UUID, notification_id: UUID) -> None:
        with transaction(self._session):
            row = self._session.execute(
                select(NotificationModel).where(
                    NotificationModel.id == notification_id,
                    NotificationModel.user_id == user_id,
                )
            ).scalar_one_or_none()
            if row is None:
                raise NotFoundError("Notification", str(notification_id))
            row.is_read = True
            row.updated_by_id = user_id


def deliver_outbox(outbox: NotificationOutbox, notifier: Notifier | None) -> int:
    """
    Deliver every queued message, best effort.

    Returns:
        The number of messages delivered successfully.
    """
    if notifier is None:
        return 0
    delivered = 0
    for note in outbox.messages:
        try:
            notifier.notify(
                note.recipient_ids,
                note.notification_type,
                note.title,
                note.message,
                note.reference_id,
            )
        except Exception:
            logger.error(
                "notification_delivery_failed",
                extra={
                    "notification_type": note.notification_type.value,
                    "reference_id": str(note.reference_id) if note.reference_id else None,
                    "recipient_count": len(note.recipient_ids),
                },
                exc_info=True,
            )
            continue
        delivered += 1
        logger.info(
            "notification_delivered",
            extra={
                "notification_type": note.notification_type.value,
                "reference_id": str(note.reference_id) if note.reference_id else None,
                "recipient_count": len(note.recipient_ids),
            },
        )
    outbox.messages.clear()
    return delivered
