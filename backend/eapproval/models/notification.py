"""알림 모델"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eapproval.core.database import Base


class NotificationType(str, Enum):
    """알림 종류"""

    APPROVAL_REQUEST = "approval_request"
    APPROVAL_REJECTED = "approval_rejected"
    APPROVAL_APPROVED = "approval_approved"
    APPROVAL_COMPLETED = "approval_completed"


class Notification(Base):
    """알림 모델"""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    link: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type} to {self.recipient_id}>"
