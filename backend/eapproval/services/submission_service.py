"""결재 상신 서비스

결재 문서 생성 + 결재선 구성 + 첫 결재자 알림.
"""

import logging
from uuid import UUID

from eapproval.core.config import get_settings
from eapproval.core.exceptions import ValidationError
from eapproval.core.telemetry import record_metric, traced_function
from eapproval.models.approval import ApproverStatus, DocumentStatus
from eapproval.models.notification import NotificationType
from eapproval.models.profile import Profile
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas.approval import SubmitDocumentRequest, SubmitDocumentResponse
from eapproval.services.authorization import AuthorizationContext
from eapproval.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


class DocumentSubmissionService:
    """결재 상신 서비스"""

    def __init__(
        self,
        repo: IApprovalRepository,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.repo = repo
        self.dispatcher = dispatcher or NotificationDispatcher(repo)

    @traced_function("approval.submit_document")
    async def submit_document(
        self,
        ctx: AuthorizationContext,
        data: SubmitDocumentRequest,
    ) -> SubmitDocumentResponse:
        """결재 상신

        문서와 결재선은 하나의 트랜잭션으로 생성된다.
        참조인 등록과 알림은 실패해도 상신 자체는 성공으로 처리 (best-effort).
        """
        title = data.title.strip()
        approver_ids = list(data.approver_ids)
        approvers = await self._validate(title, data.document_type, approver_ids)

        async with self.repo.transaction():
            document_id = await self.repo.insert_document(
                {
                    "title": title,
                    "content": data.content,
                    "document_type": data.document_type,
                    "author_id": ctx.user_id,
                    "current_step": 1,
                    "current_approver_id": approver_ids[0],
                    "status": DocumentStatus.PENDING.value,
                    "attachments": [a.model_dump() for a in data.attachments],
                }
            )
            await self.repo.insert_chain_entries(
                [
                    {
                        "document_id": document_id,
                        "approver_id": approver_id,
                        "approver_name": approvers[approver_id].full_name,
                        "approver_position": approvers[approver_id].position,
                        "sequence": index + 1,
                        "status": (
                            ApproverStatus.WAITING.value
                            if index == 0
                            else ApproverStatus.NOT_REACHED.value
                        ),
                    }
                    for index, approver_id in enumerate(approver_ids)
                ]
            )

        logger.info(
            f"Approval document submitted: document={document_id}, author={ctx.user_id}, "
            f"type={data.document_type}, approvers={len(approver_ids)}"
        )
        record_metric("submissions_total", attributes={"document_type": data.document_type})

        if data.referrer_ids:
            await self._add_referrers(document_id, data.referrer_ids)

        await self.dispatcher.notify_document(
            approver_ids[0],
            NotificationType.APPROVAL_REQUEST,
            document_id,
            title,
        )

        return SubmitDocumentResponse(document_id=document_id)

    async def _validate(
        self,
        title: str,
        document_type: str | None,
        approver_ids: list[UUID],
    ) -> dict[UUID, Profile]:
        """상신 입력 검증 후 결재자 프로필 반환"""
        if not title:
            raise ValidationError("제목을 입력해주세요.")
        if not document_type:
            raise ValidationError("문서 종류가 지정되지 않았습니다.")
        if document_type not in get_settings().document_types:
            raise ValidationError(f"지원하지 않는 문서 종류입니다: {document_type}")
        if not approver_ids:
            raise ValidationError("결재자를 한 명 이상 지정해주세요.")
        if len(set(approver_ids)) != len(approver_ids):
            raise ValidationError("같은 결재자를 중복 지정할 수 없습니다.")

        profiles = {p.id: p for p in await self.repo.get_profiles(approver_ids)}
        unknown = [str(pid) for pid in approver_ids if pid not in profiles]
        if unknown:
            raise ValidationError(f"존재하지 않는 결재자입니다: {', '.join(unknown)}")

        return profiles

    async def _add_referrers(self, document_id: UUID, referrer_ids: list[UUID]) -> None:
        """참조인 등록 (실패해도 상신은 유효)"""
        unique_ids = list(dict.fromkeys(referrer_ids))
        try:
            profiles = {p.id: p for p in await self.repo.get_profiles(unique_ids)}
            skipped = [pid for pid in unique_ids if pid not in profiles]
            if skipped:
                logger.warning(f"Unknown referrers skipped: document={document_id}, ids={skipped}")

            rows = [
                {
                    "document_id": document_id,
                    "referrer_id": pid,
                    "referrer_name": profiles[pid].full_name,
                    "referrer_position": profiles[pid].position,
                }
                for pid in unique_ids
                if pid in profiles
            ]
            if rows:
                async with self.repo.transaction():
                    await self.repo.insert_referrers(rows)
        except Exception as e:
            logger.warning(f"Failed to add referrers: document={document_id}, error={e}")
