"""전자결재 모델

결재 문서 / 결재선(결재자) / 참조인 / 결재 이력
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eapproval.core.database import Base


class DocumentStatus(str, Enum):
    """결재 문서 상태"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApproverStatus(str, Enum):
    """결재선 항목 상태"""

    NOT_REACHED = "미결"
    WAITING = "대기"
    APPROVED = "승인"
    REJECTED = "반려"


class ApprovalAction(str, Enum):
    """결재 처리 액션"""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def entry_status(self) -> ApproverStatus:
        """액션 적용 후 결재선 항목 상태 (이력의 action 값으로도 사용)"""
        if self is ApprovalAction.APPROVE:
            return ApproverStatus.APPROVED
        return ApproverStatus.REJECTED


class ApprovalDocument(Base):
    """결재 문서 모델"""

    __tablename__ = "approval_documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    # 문서 종류별 양식 필드 (엔진은 해석하지 않음)
    content: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    current_step: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    current_approver_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DocumentStatus.PENDING.value,
        nullable=False,
    )
    # [{path, original_name, size}]
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # 관계
    approvers: Mapped[list["ApprovalDocumentApprover"]] = relationship(
        "ApprovalDocumentApprover",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ApprovalDocumentApprover.sequence",
    )
    referrers: Mapped[list["ApprovalDocumentReferrer"]] = relationship(
        "ApprovalDocumentReferrer",
        back_populates="document",
        cascade="all, delete-orphan",
    )
    histories: Mapped[list["ApprovalHistory"]] = relationship(
        "ApprovalHistory",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ApprovalHistory.created_at",
    )

    def __repr__(self) -> str:
        return f"<ApprovalDocument {self.title} ({self.status})>"


class ApprovalDocumentApprover(Base):
    """결재선 항목 모델

    approver_name / approver_position은 상신 시점의 스냅샷이며 이후 변경하지 않는다.
    """

    __tablename__ = "approval_document_approvers"
    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_approver_document_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("approval_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    approver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    approver_name: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    approver_position: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(10),
        default=ApproverStatus.NOT_REACHED.value,
        nullable=False,
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # 관계
    document: Mapped["ApprovalDocument"] = relationship(
        "ApprovalDocument", back_populates="approvers"
    )

    def __repr__(self) -> str:
        return f"<ApprovalDocumentApprover #{self.sequence} {self.approver_id} {self.status}>"


class ApprovalDocumentReferrer(Base):
    """참조인 모델 (결재 진행에는 관여하지 않음)"""

    __tablename__ = "approval_document_referrers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("approval_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referrer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    referrer_name: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    referrer_position: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    # 관계
    document: Mapped["ApprovalDocument"] = relationship(
        "ApprovalDocument", back_populates="referrers"
    )

    def __repr__(self) -> str:
        return f"<ApprovalDocumentReferrer {self.referrer_id} on {self.document_id}>"


class ApprovalHistory(Base):
    """결재 이력 모델 (추가만 가능)"""

    __tablename__ = "approval_histories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("approval_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # 관계
    document: Mapped["ApprovalDocument"] = relationship(
        "ApprovalDocument", back_populates="histories"
    )

    def __repr__(self) -> str:
        return f"<ApprovalHistory {self.action} by {self.actor_id}>"


class DocumentBox(str, Enum):
    """결재함 구분"""

    ALL = "all"
    TO_REVIEW = "to_review"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    REFERRED = "referred"
