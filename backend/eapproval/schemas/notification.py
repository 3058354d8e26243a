from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    """알림 응답"""

    id: UUID
    recipient_id: UUID = Field(serialization_alias="recipientId")
    type: str
    content: str
    link: str | None = None
    is_read: bool = Field(serialization_alias="isRead")
    created_at: datetime = Field(serialization_alias="createdAt")

    class Config:
        populate_by_name = True
        from_attributes = True


class NotificationListResponse(BaseModel):
    """알림 목록 응답"""

    items: list[NotificationResponse]
    unread_count: int = Field(serialization_alias="unreadCount")

    class Config:
        populate_by_name = True


class MarkAllReadResponse(BaseModel):
    """전체 읽음 처리 응답"""

    updated: int
