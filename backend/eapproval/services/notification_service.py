"""결재 알림 서비스

NotificationDispatcher: 상신/결재 이벤트의 부가 알림 (best-effort).
NotificationService: 수신자의 알림 조회 및 읽음 처리.
"""

import logging
from uuid import UUID

from eapproval.core.config import get_settings
from eapproval.core.exceptions import NotAuthorizedError, NotFoundError
from eapproval.core.telemetry import record_metric
from eapproval.models.notification import NotificationType
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas.notification import NotificationListResponse, NotificationResponse
from eapproval.services.authorization import AuthorizationContext

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES: dict[NotificationType, str] = {
    NotificationType.APPROVAL_REQUEST: "새로운 '{title}' 문서에 대한 결재가 요청되었습니다.",
    NotificationType.APPROVAL_REJECTED: "상신하신 '{title}' 문서가 반려되었습니다.",
    NotificationType.APPROVAL_APPROVED: "상신하신 '{title}' 문서가 최종 승인되었습니다.",
    NotificationType.APPROVAL_COMPLETED: "'{title}' 문서의 결재가 완료되었습니다.",
}


def document_link(document_id: UUID) -> str:
    """문서 상세 페이지 링크"""
    prefix = get_settings().notification_link_prefix.rstrip("/")
    return f"{prefix}/{document_id}"


class NotificationDispatcher:
    """결재 알림 발송

    알림은 결재 상태에 영향을 주지 않으므로 실패해도 예외를 올리지 않는다.
    각 알림은 독립 트랜잭션으로 저장되며 실패 시 설정된 횟수만큼 재시도한다.
    """

    def __init__(self, repo: IApprovalRepository, max_attempts: int | None = None):
        self.repo = repo
        self.max_attempts = max(1, max_attempts or get_settings().notification_max_attempts)

    async def notify(
        self,
        recipient_id: UUID,
        type: NotificationType,
        content: str,
        link: str | None = None,
    ) -> bool:
        """알림 1건 저장

        Returns:
            저장 성공 여부
        """
        fields = {
            "recipient_id": recipient_id,
            "type": type.value,
            "content": content,
            "link": link,
        }

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.repo.transaction():
                    await self.repo.insert_notification(fields)
                return True
            except Exception as e:
                logger.warning(
                    f"Notification failed: type={type.value}, recipient={recipient_id}, "
                    f"attempt={attempt}/{self.max_attempts}, error={e}"
                )

        record_metric("notification_failures_total", attributes={"type": type.value})
        logger.error(
            f"Notification dropped after {self.max_attempts} attempts: "
            f"type={type.value}, recipient={recipient_id}"
        )
        return False

    async def notify_document(
        self,
        recipient_id: UUID,
        type: NotificationType,
        document_id: UUID,
        title: str,
    ) -> bool:
        """문서 이벤트 알림 (메시지/링크 자동 생성)"""
        content = MESSAGE_TEMPLATES[type].format(title=title)
        return await self.notify(recipient_id, type, content, document_link(document_id))


class NotificationService:
    """알림 조회/읽음 처리 서비스"""

    def __init__(self, repo: IApprovalRepository):
        self.repo = repo

    async def list_notifications(
        self,
        ctx: AuthorizationContext,
        unread_only: bool = False,
        limit: int = 50,
    ) -> NotificationListResponse:
        """내 알림 목록"""
        notifications = await self.repo.list_notifications(ctx.user_id, unread_only, limit)
        unread_count = await self.repo.count_unread_notifications(ctx.user_id)

        return NotificationListResponse(
            items=[NotificationResponse.model_validate(n) for n in notifications],
            unread_count=unread_count,
        )

    async def mark_read(
        self, ctx: AuthorizationContext, notification_id: UUID
    ) -> NotificationResponse:
        """알림 읽음 처리 (수신자 본인만 가능)"""
        notification = await self.repo.get_notification(notification_id)
        if not notification:
            raise NotFoundError("알림을 찾을 수 없습니다.", code="NOTIFICATION_NOT_FOUND")
        if notification.recipient_id != ctx.user_id:
            raise NotAuthorizedError("본인의 알림만 처리할 수 있습니다.", code="PERMISSION_DENIED")

        if not notification.is_read:
            async with self.repo.transaction():
                await self.repo.mark_notifications_read(ctx.user_id, notification_id)
            notification.is_read = True

        return NotificationResponse.model_validate(notification)

    async def mark_all_read(self, ctx: AuthorizationContext) -> int:
        """내 알림 전체 읽음 처리"""
        async with self.repo.transaction():
            updated = await self.repo.mark_notifications_read(ctx.user_id)
        logger.info(f"Notifications marked read: user={ctx.user_id}, count={updated}")
        return updated
