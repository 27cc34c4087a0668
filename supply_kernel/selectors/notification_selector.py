"""
Module: supply_kernel.selectors.notification_selector
Responsibility: Read-only access to a party's notification inbox.
Architecture position: Kernel > Selectors.  Read-only.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.models.notification import NotificationModel
from supply_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class NotificationView:
    notification_id: UUID
    user_id: UUID
    notification_type: str
    title: str
    message: str
    reference_id: UUID | None
    is_read: bool
    created_at: datetime | None


class NotificationSelector(BaseSelector[NotificationModel]):

    @staticmethod
    def _view(row: NotificationModel) -> NotificationView:
        return NotificationView(
            notification_id=row.id,
            user_id=row.user_id,
            notification_type=row.notification_type,
            title=row.title,
            message=row.message,
            reference_id=row.reference_id,
            is_read=row.is_read,
            created_at=row.created_at,
        )

    def unread_for(self, user_id: UUID) -> list[NotificationView]:
        rows = self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .order_by(NotificationModel.created_at)
        ).scalars().all()
        return [self._view(row) for row in rows]

    def for_reference(self, reference_id: UUID) -> list[NotificationView]:
        rows = self.session.execute(
            select(NotificationModel).where(NotificationModel.reference_id == reference_id)
        ).scalars().all()
        return [self._view(row) for row in rows]

    def unread_count(self, user_id: UUID) -> int:
        return self.session.execute(
            select(func.count(NotificationModel.id))
            .where(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
        ).scalar_one()
