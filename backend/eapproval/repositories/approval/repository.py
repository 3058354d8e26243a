"""SQLAlchemy 결재 Repository

AsyncSession 기반 결재 저장소. 요청 단위 세션을 공유하며,
transaction() 블록 단위로 커밋/롤백한다.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eapproval.core.exceptions import StoreError
from eapproval.models.approval import (
    ApprovalDocument,
    ApprovalDocumentApprover,
    ApprovalDocumentReferrer,
    ApprovalHistory,
    ApproverStatus,
    DocumentBox,
)
from eapproval.models.notification import Notification
from eapproval.models.profile import Profile

logger = logging.getLogger(__name__)


class ApprovalRepository:
    """결재 저장소 (PostgreSQL / SQLite)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """블록 단위 커밋/롤백"""
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Approval store transaction failed: {e}")
            raise StoreError("저장소 처리 중 오류가 발생했습니다.") from e
        except Exception:
            await self.db.rollback()
            raise

    async def _execute(self, query):
        """쿼리 실행 (DB 오류는 StoreError로 변환)"""
        try:
            return await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Approval store query failed: {e}")
            raise StoreError("저장소 조회 중 오류가 발생했습니다.") from e

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StoreError("저장소 쓰기 중 오류가 발생했습니다.") from e

    # =========================================================================
    # 프로필
    # =========================================================================

    async def get_profiles(self, profile_ids: list[UUID]) -> list[Profile]:
        if not profile_ids:
            return []
        result = await self._execute(select(Profile).where(Profile.id.in_(profile_ids)))
        return list(result.scalars().all())

    # =========================================================================
    # 문서 / 결재선
    # =========================================================================

    async def insert_document(self, fields: dict[str, Any]) -> UUID:
        document = ApprovalDocument(**fields)
        self.db.add(document)
        await self._flush()
        return document.id

    async def insert_chain_entries(self, entries: list[dict[str, Any]]) -> None:
        self.db.add_all([ApprovalDocumentApprover(**entry) for entry in entries])
        await self._flush()

    async def insert_referrers(self, referrers: list[dict[str, Any]]) -> None:
        self.db.add_all([ApprovalDocumentReferrer(**referrer) for referrer in referrers])
        await self._flush()

    async def get_document(self, document_id: UUID) -> ApprovalDocument | None:
        result = await self._execute(
            select(ApprovalDocument)
            .where(ApprovalDocument.id == document_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_chain_entry(
        self,
        document_id: UUID,
        approver_id: UUID,
        status: str,
    ) -> ApprovalDocumentApprover | None:
        result = await self._execute(
            select(ApprovalDocumentApprover)
            .where(
                ApprovalDocumentApprover.document_id == document_id,
                ApprovalDocumentApprover.approver_id == approver_id,
                ApprovalDocumentApprover.status == status,
            )
            .order_by(ApprovalDocumentApprover.sequence)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_chain_entry_by_sequence(
        self, document_id: UUID, sequence: int
    ) -> ApprovalDocumentApprover | None:
        result = await self._execute(
            select(ApprovalDocumentApprover)
            .where(
                ApprovalDocumentApprover.document_id == document_id,
                ApprovalDocumentApprover.sequence == sequence,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_chain_entries(self, document_id: UUID) -> list[ApprovalDocumentApprover]:
        result = await self._execute(
            select(ApprovalDocumentApprover)
            .where(ApprovalDocumentApprover.document_id == document_id)
            .order_by(ApprovalDocumentApprover.sequence)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def update_chain_entry_status(
        self,
        entry_id: UUID,
        new_status: str,
        decided_at: datetime | None,
        expected_status: str,
    ) -> int:
        # 조건부 UPDATE: 현재 상태가 expected_status인 행만 변경
        result = await self._execute(
            update(ApprovalDocumentApprover)
            .where(
                ApprovalDocumentApprover.id == entry_id,
                ApprovalDocumentApprover.status == expected_status,
            )
            .values(status=new_status, decided_at=decided_at)
        )
        return result.rowcount

    async def update_document(
        self,
        document_id: UUID,
        fields: dict[str, Any],
        expected_status: str | None = None,
        expected_step: int | None = None,
    ) -> int:
        conditions = [ApprovalDocument.id == document_id]
        if expected_status is not None:
            conditions.append(ApprovalDocument.status == expected_status)
        if expected_step is not None:
            conditions.append(ApprovalDocument.current_step == expected_step)

        result = await self._execute(
            update(ApprovalDocument).where(*conditions).values(**fields)
        )
        return result.rowcount

    async def insert_history(self, record: dict[str, Any]) -> None:
        self.db.add(ApprovalHistory(**record))
        await self._flush()

    async def list_referrers(self, document_id: UUID) -> list[ApprovalDocumentReferrer]:
        result = await self._execute(
            select(ApprovalDocumentReferrer).where(
                ApprovalDocumentReferrer.document_id == document_id
            )
        )
        return list(result.scalars().all())

    async def list_histories(self, document_id: UUID) -> list[ApprovalHistory]:
        result = await self._execute(
            select(ApprovalHistory)
            .where(ApprovalHistory.document_id == document_id)
            .order_by(ApprovalHistory.created_at)
        )
        return list(result.scalars().all())

    async def list_documents(
        self,
        user_id: UUID,
        box: DocumentBox,
        query: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[ApprovalDocument], int]:
        condition = self._box_condition(user_id, box)
        conditions = [condition]
        if query:
            pattern = f"%{query.lower()}%"
            conditions.append(
                or_(
                    func.lower(ApprovalDocument.title).like(pattern),
                    func.lower(ApprovalDocument.document_type).like(pattern),
                )
            )

        count_result = await self._execute(
            select(func.count(ApprovalDocument.id)).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self._execute(
            select(ApprovalDocument)
            .where(*conditions)
            .order_by(ApprovalDocument.created_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    @staticmethod
    def _box_condition(user_id: UUID, box: DocumentBox):
        """결재함별 WHERE 조건"""
        in_chain = select(ApprovalDocumentApprover.document_id).where(
            ApprovalDocumentApprover.approver_id == user_id
        )
        referred = select(ApprovalDocumentReferrer.document_id).where(
            ApprovalDocumentReferrer.referrer_id == user_id
        )

        if box == DocumentBox.TO_REVIEW:
            return ApprovalDocument.id.in_(
                in_chain.where(ApprovalDocumentApprover.status == ApproverStatus.WAITING.value)
            )
        if box == DocumentBox.SUBMITTED:
            return ApprovalDocument.author_id == user_id
        if box == DocumentBox.COMPLETED:
            return ApprovalDocument.id.in_(
                in_chain.where(
                    ApprovalDocumentApprover.status.in_(
                        [ApproverStatus.APPROVED.value, ApproverStatus.REJECTED.value]
                    )
                )
            )
        if box == DocumentBox.REFERRED:
            return ApprovalDocument.id.in_(referred)

        return or_(
            ApprovalDocument.author_id == user_id,
            ApprovalDocument.id.in_(in_chain),
            ApprovalDocument.id.in_(referred),
        )

    # =========================================================================
    # 알림
    # =========================================================================

    async def insert_notification(self, fields: dict[str, Any]) -> UUID:
        notification = Notification(**fields)
        self.db.add(notification)
        await self._flush()
        return notification.id

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        result = await self._execute(
            select(Notification)
            .where(Notification.id == notification_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_notifications(
        self, recipient_id: UUID, unread_only: bool, limit: int
    ) -> list[Notification]:
        query = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self._execute(
            query.order_by(Notification.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_unread_notifications(self, recipient_id: UUID) -> int:
        result = await self._execute(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def mark_notifications_read(
        self, recipient_id: UUID, notification_id: UUID | None = None
    ) -> int:
        conditions = [
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        ]
        if notification_id is not None:
            conditions.append(Notification.id == notification_id)

        result = await self._execute(
            update(Notification).where(*conditions).values(is_read=True)
        )
        return result.rowcount
