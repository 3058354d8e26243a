"""결재 Repository 인터페이스 정의

Protocol 기반 인터페이스로 구조적 서브타이핑 지원
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from eapproval.models.approval import (
    ApprovalDocument,
    ApprovalDocumentApprover,
    ApprovalDocumentReferrer,
    ApprovalHistory,
    DocumentBox,
)
from eapproval.models.notification import Notification
from eapproval.models.profile import Profile


class IApprovalRepository(Protocol):
    """결재 Repository 인터페이스

    ApprovalRepository와 MockApprovalRepository가 구현하는 공통 인터페이스.
    I/O 실패는 StoreError로 올린다.
    """

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """원자적 작업 단위

        블록이 정상 종료되면 커밋, 예외 발생 시 블록 안의 쓰기를 모두 되돌린다.
        """
        ...

    # ===== 프로필 =====

    async def get_profiles(self, profile_ids: list[UUID]) -> list[Profile]:
        """ID 목록으로 프로필 조회 (없는 ID는 결과에서 빠짐)"""
        ...

    # ===== 문서 / 결재선 =====

    async def insert_document(self, fields: dict[str, Any]) -> UUID:
        """결재 문서 생성 후 ID 반환"""
        ...

    async def insert_chain_entries(self, entries: list[dict[str, Any]]) -> None:
        """결재선 항목 일괄 생성"""
        ...

    async def insert_referrers(self, referrers: list[dict[str, Any]]) -> None:
        """참조인 일괄 생성"""
        ...

    async def get_document(self, document_id: UUID) -> ApprovalDocument | None:
        """결재 문서 조회"""
        ...

    async def get_chain_entry(
        self,
        document_id: UUID,
        approver_id: UUID,
        status: str,
    ) -> ApprovalDocumentApprover | None:
        """(문서, 결재자, 상태)에 해당하는 결재선 항목 조회"""
        ...

    async def get_chain_entry_by_sequence(
        self, document_id: UUID, sequence: int
    ) -> ApprovalDocumentApprover | None:
        """순번으로 결재선 항목 조회"""
        ...

    async def list_chain_entries(self, document_id: UUID) -> list[ApprovalDocumentApprover]:
        """문서의 결재선 (순번 오름차순)"""
        ...

    async def update_chain_entry_status(
        self,
        entry_id: UUID,
        new_status: str,
        decided_at: datetime | None,
        expected_status: str,
    ) -> int:
        """결재선 항목 상태 변경 (현재 상태가 expected_status일 때만)

        Returns:
            변경된 행 수 (0이면 다른 요청이 먼저 처리함)
        """
        ...

    async def update_document(
        self,
        document_id: UUID,
        fields: dict[str, Any],
        expected_status: str | None = None,
        expected_step: int | None = None,
    ) -> int:
        """문서 수정 (expected_* 조건이 주어지면 조건부 수정)

        Returns:
            변경된 행 수
        """
        ...

    async def insert_history(self, record: dict[str, Any]) -> None:
        """결재 이력 추가"""
        ...

    async def list_referrers(self, document_id: UUID) -> list[ApprovalDocumentReferrer]:
        """문서의 참조인 목록"""
        ...

    async def list_histories(self, document_id: UUID) -> list[ApprovalHistory]:
        """문서의 결재 이력 (시간순)"""
        ...

    async def list_documents(
        self,
        user_id: UUID,
        box: DocumentBox,
        query: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[ApprovalDocument], int]:
        """결재함별 문서 목록 (최신순)

        Returns:
            (문서 목록, 전체 개수)
        """
        ...

    # ===== 알림 =====

    async def insert_notification(self, fields: dict[str, Any]) -> UUID:
        """알림 생성"""
        ...

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        """알림 조회"""
        ...

    async def list_notifications(
        self, recipient_id: UUID, unread_only: bool, limit: int
    ) -> list[Notification]:
        """수신자의 알림 목록 (최신순)"""
        ...

    async def count_unread_notifications(self, recipient_id: UUID) -> int:
        """읽지 않은 알림 수"""
        ...

    async def mark_notifications_read(
        self, recipient_id: UUID, notification_id: UUID | None = None
    ) -> int:
        """알림 읽음 처리 (notification_id가 없으면 전체)

        Returns:
            변경된 행 수
        """
        ...
