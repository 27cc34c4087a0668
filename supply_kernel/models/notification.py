"""
Module: supply_kernel.models.notification
Responsibility: ORM persistence for the in-app notification inbox written by
    StoredNotifier after a use case commits.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - None beyond standard IntegrityError; rows are written in their own unit
      so a failure here never touches inventory.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase, UUIDString
from supply_kernel.db.types import NotesType


class NotificationModel(TrackedBase):
    """One message in one party's inbox."""

    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(NotesType, nullable=False)
    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} user={self.user_id} read={self.is_read}>"
