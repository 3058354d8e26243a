"""결재 문서 조회 서비스"""

import logging
import math
from uuid import UUID

from eapproval.core.exceptions import NotAuthorizedError, NotFoundError, ValidationError
from eapproval.models.approval import DocumentBox
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas.approval import (
    ApprovalDocumentDetailResponse,
    ApprovalDocumentListResponse,
    ApprovalDocumentResponse,
    ChainEntryResponse,
    HistoryResponse,
    ReferrerResponse,
)
from eapproval.schemas.common import PaginationMeta
from eapproval.services.authorization import AuthorizationContext

logger = logging.getLogger(__name__)


class ApprovalQueryService:
    """결재 문서 상세/결재함 조회"""

    def __init__(self, repo: IApprovalRepository):
        self.repo = repo

    async def get_document_detail(
        self, ctx: AuthorizationContext, document_id: UUID
    ) -> ApprovalDocumentDetailResponse:
        """문서 상세 조회

        작성자, 결재선에 포함된 결재자, 참조인, 관리자만 열람할 수 있다.
        """
        document = await self.repo.get_document(document_id)
        if not document:
            raise NotFoundError("문서를 찾을 수 없습니다.")

        approvers = await self.repo.list_chain_entries(document_id)
        referrers = await self.repo.list_referrers(document_id)

        can_view = (
            ctx.is_admin
            or document.author_id == ctx.user_id
            or any(a.approver_id == ctx.user_id for a in approvers)
            or any(r.referrer_id == ctx.user_id for r in referrers)
        )
        if not can_view:
            raise NotAuthorizedError("문서 열람 권한이 없습니다.", code="PERMISSION_DENIED")

        histories = await self.repo.list_histories(document_id)

        base = ApprovalDocumentResponse.model_validate(document)
        return ApprovalDocumentDetailResponse(
            **base.model_dump(),
            approvers=[ChainEntryResponse.model_validate(a) for a in approvers],
            referrers=[ReferrerResponse.model_validate(r) for r in referrers],
            histories=[HistoryResponse.model_validate(h) for h in histories],
        )

    async def list_documents(
        self,
        ctx: AuthorizationContext,
        box: str = DocumentBox.ALL.value,
        query: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ApprovalDocumentListResponse:
        """결재함 목록 (최신순)"""
        try:
            box_type = DocumentBox(box)
        except ValueError:
            raise ValidationError(f"지원하지 않는 결재함입니다: {box}")

        page = max(1, page)
        limit = max(1, limit)
        query = query.strip() if query else None

        documents, total = await self.repo.list_documents(
            ctx.user_id, box_type, query or None, (page - 1) * limit, limit
        )

        return ApprovalDocumentListResponse(
            items=[ApprovalDocumentResponse.model_validate(d) for d in documents],
            meta=PaginationMeta(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if total > 0 else 0,
            ),
        )
