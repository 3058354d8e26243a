"""결재 처리 서비스

현재 결재자의 승인/반려를 기록하고 결재선을 진행하거나 종료한다.

상태 전이:
    pending(step=k) --approve, k < N--> pending(step=k+1)
    pending(step=k) --approve, k = N--> approved
    pending(step=k) --reject--------> rejected
"""

import logging
from datetime import datetime, timezone
from typing import NoReturn
from uuid import UUID

from eapproval.core.exceptions import (
    AlreadyProcessedError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
)
from eapproval.core.telemetry import record_metric, traced_function
from eapproval.models.approval import (
    ApprovalAction,
    ApprovalDocument,
    ApproverStatus,
    DocumentStatus,
)
from eapproval.models.notification import NotificationType
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas.approval import DecideDocumentRequest, DecisionResponse
from eapproval.services.authorization import AuthorizationContext
from eapproval.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


class ApprovalDecisionService:
    """결재 처리 서비스"""

    def __init__(
        self,
        repo: IApprovalRepository,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.repo = repo
        self.dispatcher = dispatcher or NotificationDispatcher(repo)

    @traced_function("approval.decide_document")
    async def decide_document(
        self,
        ctx: AuthorizationContext,
        document_id: UUID,
        data: DecideDocumentRequest,
    ) -> DecisionResponse:
        """결재 승인/반려

        검증(1~3)은 변경 없이 실패하고, 기록(4~6)은 하나의 트랜잭션으로 처리된다.
        동시에 들어온 요청 중 하나만 결재선을 진행시키며 나머지는 ALREADY_PROCESSED.
        """
        action = ApprovalAction(data.action)

        # 1. 문서 조회
        document = await self.repo.get_document(document_id)
        if not document:
            raise NotFoundError("문서를 찾을 수 없습니다.")
        if document.status != DocumentStatus.PENDING.value:
            raise AlreadyProcessedError("이미 처리된 문서입니다.")

        # 2. 현재 결재자 확인 (관리자도 예외 없음)
        if document.current_approver_id != ctx.user_id:
            raise NotAuthorizedError("현재 결재자가 아닙니다.")

        # 세션 identity map의 문서 객체는 재조회 시 갱신되므로 현재 단계를 미리 보관
        step = document.current_step

        # 3. 대기 중인 결재선 항목 확인
        entry = await self.repo.get_chain_entry(
            document_id, ctx.user_id, ApproverStatus.WAITING.value
        )
        if not entry:
            await self._raise_missing_entry(document_id, step, ctx.user_id)

        next_entry = None
        if action is ApprovalAction.APPROVE:
            next_entry = await self.repo.get_chain_entry_by_sequence(document_id, step + 1)

        # 4~6. 기록 (원자적)
        now = datetime.now(timezone.utc)
        async with self.repo.transaction():
            affected = await self.repo.update_chain_entry_status(
                entry.id,
                action.entry_status.value,
                now,
                expected_status=ApproverStatus.WAITING.value,
            )
            if affected != 1:
                self._conflict(document_id, ctx.user_id)

            await self.repo.insert_history(
                {
                    "document_id": document_id,
                    "actor_id": ctx.user_id,
                    "action": action.entry_status.value,
                    "comment": data.comment,
                    "created_at": now,
                }
            )

            if action is ApprovalAction.REJECT:
                new_status = DocumentStatus.REJECTED
                new_step = step
                next_approver_id = None
            elif next_entry is not None:
                affected = await self.repo.update_chain_entry_status(
                    next_entry.id,
                    ApproverStatus.WAITING.value,
                    None,
                    expected_status=ApproverStatus.NOT_REACHED.value,
                )
                if affected != 1:
                    raise InvalidStateError("다음 결재자 상태가 올바르지 않습니다.")
                new_status = DocumentStatus.PENDING
                new_step = step + 1
                next_approver_id = next_entry.approver_id
            else:
                new_status = DocumentStatus.APPROVED
                new_step = step
                next_approver_id = None

            affected = await self.repo.update_document(
                document_id,
                {
                    "status": new_status.value,
                    "current_step": new_step,
                    "current_approver_id": next_approver_id,
                },
                expected_status=DocumentStatus.PENDING.value,
                expected_step=step,
            )
            if affected != 1:
                self._conflict(document_id, ctx.user_id)

        logger.info(
            f"Approval decided: document={document_id}, actor={ctx.user_id}, "
            f"action={action.value}, step={step}, status={new_status.value}"
        )
        record_metric(
            "decisions_total",
            attributes={"action": action.value, "result": new_status.value},
        )

        # 7. 알림 (best-effort)
        await self._notify(document, new_status, next_approver_id)

        return DecisionResponse(
            document_id=document_id,
            new_status=new_status.value,
            current_step=new_step,
            current_approver_id=next_approver_id,
        )

    async def _raise_missing_entry(self, document_id: UUID, step: int, user_id: UUID) -> NoReturn:
        """대기 항목이 없을 때: 동시 처리에서 밀린 것인지, 데이터 불일치인지 구분

        step, user_id는 최초 조회 시점의 현재 단계와 결재자.
        """
        latest = await self.repo.get_document(document_id)
        if (
            latest is None
            or latest.status != DocumentStatus.PENDING.value
            or latest.current_step != step
            or latest.current_approver_id != user_id
        ):
            self._conflict(document_id, user_id)

        logger.error(
            f"Approval chain out of sync: document={document_id}, "
            f"current_approver={user_id}, step={step}"
        )
        raise InvalidStateError("결재선 정보가 문서 상태와 일치하지 않습니다.")

    def _conflict(self, document_id: UUID, user_id: UUID | None) -> NoReturn:
        """다른 요청이 먼저 처리한 경우"""
        logger.warning(f"Concurrent decision rejected: document={document_id}, actor={user_id}")
        record_metric("decision_conflicts_total")
        raise AlreadyProcessedError("이미 처리된 문서입니다.")

    async def _notify(
        self,
        document: ApprovalDocument,
        new_status: DocumentStatus,
        next_approver_id: UUID | None,
    ) -> None:
        """결과에 따른 알림 발송"""
        if new_status is DocumentStatus.REJECTED:
            await self.dispatcher.notify_document(
                document.author_id,
                NotificationType.APPROVAL_REJECTED,
                document.id,
                document.title,
            )
            return

        if next_approver_id is not None:
            await self.dispatcher.notify_document(
                next_approver_id,
                NotificationType.APPROVAL_REQUEST,
                document.id,
                document.title,
            )
            return

        await self.dispatcher.notify_document(
            document.author_id,
            NotificationType.APPROVAL_APPROVED,
            document.id,
            document.title,
        )
        try:
            referrers = await self.repo.list_referrers(document.id)
        except Exception as e:
            logger.warning(f"Failed to load referrers: document={document.id}, error={e}")
            return
        for referrer in referrers:
            await self.dispatcher.notify_document(
                referrer.referrer_id,
                NotificationType.APPROVAL_COMPLETED,
                document.id,
                document.title,
            )
