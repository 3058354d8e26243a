"""전자결재 스키마"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from eapproval.schemas.common import PaginationMeta


class AttachmentDescriptor(BaseModel):
    """첨부파일 정보 (파일 자체는 외부 스토리지에 저장됨)"""

    path: str = Field(min_length=1, max_length=500)
    original_name: str = Field(alias="originalName", max_length=255)
    size: int = Field(ge=0)

    class Config:
        populate_by_name = True


class SubmitDocumentRequest(BaseModel):
    """결재 상신 요청

    필수값 검증(빈 제목, 빈 결재선 등)은 서비스 레이어에서 수행한다.
    """

    title: str = Field(default="", max_length=255)
    document_type: str | None = Field(default=None, alias="documentType")
    content: dict[str, Any] = Field(default_factory=dict)
    approver_ids: list[UUID] = Field(default_factory=list, alias="approverIds")
    referrer_ids: list[UUID] = Field(default_factory=list, alias="referrerIds")
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class SubmitDocumentResponse(BaseModel):
    """결재 상신 응답"""

    document_id: UUID = Field(serialization_alias="documentId")

    class Config:
        populate_by_name = True


class DecideDocumentRequest(BaseModel):
    """결재 처리 요청"""

    action: Literal["approve", "reject"] = Field(
        description="결재 액션 (approve 또는 reject)"
    )
    comment: str | None = Field(default=None, max_length=2000)


class DecisionResponse(BaseModel):
    """결재 처리 응답"""

    document_id: UUID = Field(serialization_alias="documentId")
    new_status: str = Field(serialization_alias="newStatus")
    current_step: int = Field(serialization_alias="currentStep")
    current_approver_id: UUID | None = Field(
        default=None, serialization_alias="currentApproverId"
    )

    class Config:
        populate_by_name = True


class ChainEntryResponse(BaseModel):
    """결재선 항목 응답"""

    id: UUID
    approver_id: UUID = Field(serialization_alias="approverId")
    approver_name: str | None = Field(default=None, serialization_alias="approverName")
    approver_position: str | None = Field(
        default=None, serialization_alias="approverPosition"
    )
    sequence: int
    status: str
    decided_at: datetime | None = Field(default=None, serialization_alias="decidedAt")

    class Config:
        populate_by_name = True
        from_attributes = True


class ReferrerResponse(BaseModel):
    """참조인 응답"""

    referrer_id: UUID = Field(serialization_alias="referrerId")
    referrer_name: str | None = Field(default=None, serialization_alias="referrerName")
    referrer_position: str | None = Field(
        default=None, serialization_alias="referrerPosition"
    )

    class Config:
        populate_by_name = True
        from_attributes = True


class HistoryResponse(BaseModel):
    """결재 이력 응답"""

    actor_id: UUID = Field(serialization_alias="actorId")
    action: str
    comment: str | None = None
    created_at: datetime = Field(serialization_alias="createdAt")

    class Config:
        populate_by_name = True
        from_attributes = True


class ApprovalDocumentResponse(BaseModel):
    """결재 문서 응답"""

    id: UUID
    title: str
    document_type: str = Field(serialization_alias="documentType")
    content: dict[str, Any]
    author_id: UUID = Field(serialization_alias="authorId")
    status: str
    current_step: int = Field(serialization_alias="currentStep")
    current_approver_id: UUID | None = Field(
        default=None, serialization_alias="currentApproverId"
    )
    attachments: list[dict[str, Any]] = []
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    class Config:
        populate_by_name = True
        from_attributes = True


class ApprovalDocumentDetailResponse(ApprovalDocumentResponse):
    """결재 문서 상세 응답 (결재선, 참조인, 이력 포함)"""

    approvers: list[ChainEntryResponse] = []
    referrers: list[ReferrerResponse] = []
    histories: list[HistoryResponse] = []


class ApprovalDocumentListResponse(BaseModel):
    """결재 문서 목록 응답"""

    items: list[ApprovalDocumentResponse]
    meta: PaginationMeta
