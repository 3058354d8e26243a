"""Mock 결재 Repository

테스트/로컬 개발용 인메모리 결재 저장소.
"""

import asyncio
import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from eapproval.models.approval import (
    ApprovalDocument,
    ApprovalDocumentApprover,
    ApprovalDocumentReferrer,
    ApprovalHistory,
    ApproverStatus,
    DocumentBox,
)
from eapproval.models.notification import Notification
from eapproval.models.profile import Profile, ProfileRole

# =============================================================================
# Mock 데이터 저장소
# =============================================================================

MOCK_PROFILE_IDS = {
    "kim": UUID("00000000-0000-0000-0000-000000000001"),
    "lee": UUID("00000000-0000-0000-0000-000000000002"),
    "park": UUID("00000000-0000-0000-0000-000000000003"),
    "choi": UUID("00000000-0000-0000-0000-000000000004"),
    "jung": UUID("00000000-0000-0000-0000-000000000005"),
    "admin": UUID("00000000-0000-0000-0000-0000000000ad"),
}

MOCK_DATA: dict[str, dict[UUID, dict[str, Any]]] = {
    "profiles": {
        MOCK_PROFILE_IDS["kim"]: {
            "id": MOCK_PROFILE_IDS["kim"],
            "email": "minjun.kim@example.com",
            "full_name": "김민준",
            "department": "공무팀",
            "position": "사원",
            "role": ProfileRole.USER.value,
        },
        MOCK_PROFILE_IDS["lee"]: {
            "id": MOCK_PROFILE_IDS["lee"],
            "email": "seoyeon.lee@example.com",
            "full_name": "이서연",
            "department": "공무팀",
            "position": "과장",
            "role": ProfileRole.USER.value,
        },
        MOCK_PROFILE_IDS["park"]: {
            "id": MOCK_PROFILE_IDS["park"],
            "email": "jihun.park@example.com",
            "full_name": "박지훈",
            "department": "경영지원팀",
            "position": "부장",
            "role": ProfileRole.USER.value,
        },
        MOCK_PROFILE_IDS["choi"]: {
            "id": MOCK_PROFILE_IDS["choi"],
            "email": "yuna.choi@example.com",
            "full_name": "최유나",
            "department": "경영지원팀",
            "position": "대리",
            "role": ProfileRole.USER.value,
        },
        MOCK_PROFILE_IDS["jung"]: {
            "id": MOCK_PROFILE_IDS["jung"],
            "email": "dohyun.jung@example.com",
            "full_name": "정도현",
            "department": "설계팀",
            "position": "차장",
            "role": ProfileRole.USER.value,
        },
        MOCK_PROFILE_IDS["admin"]: {
            "id": MOCK_PROFILE_IDS["admin"],
            "email": "admin@example.com",
            "full_name": "관리자",
            "department": "전산팀",
            "position": "팀장",
            "role": ProfileRole.ADMIN.value,
        },
    },
    "documents": {},
    "approvers": {},
    "referrers": {},
    "histories": {},
    "notifications": {},
}


def _copy_mock_data() -> dict[str, dict[UUID, dict[str, Any]]]:
    """MOCK_DATA 깊은 복사 (테스트 간 격리)"""
    return copy.deepcopy(MOCK_DATA)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MockApprovalRepository:
    """인메모리 결재 저장소

    행은 dict로 보관하고, 조회 시 ORM 모델 인스턴스(세션에 붙지 않은)로 변환해 반환한다.
    transaction()은 asyncio.Lock으로 직렬화되며 예외 시 스냅샷으로 복구한다.
    """

    def __init__(self, data: dict[str, dict[UUID, dict[str, Any]]] | None = None):
        self.data = data if data is not None else _copy_mock_data()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshot = copy.deepcopy(self.data)
            try:
                yield
            except Exception:
                self.data.clear()
                self.data.update(snapshot)
                raise

    # =========================================================================
    # 프로필
    # =========================================================================

    async def get_profiles(self, profile_ids: list[UUID]) -> list[Profile]:
        profiles = self.data["profiles"]
        return [Profile(**profiles[pid]) for pid in profile_ids if pid in profiles]

    # =========================================================================
    # 문서 / 결재선
    # =========================================================================

    async def insert_document(self, fields: dict[str, Any]) -> UUID:
        now = _now()
        row = {
            "id": uuid4(),
            "content": {},
            "attachments": [],
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        self.data["documents"][row["id"]] = row
        return row["id"]

    async def insert_chain_entries(self, entries: list[dict[str, Any]]) -> None:
        for entry in entries:
            key = (entry["document_id"], entry["sequence"])
            if any(
                (e["document_id"], e["sequence"]) == key
                for e in self.data["approvers"].values()
            ):
                raise ValueError(f"duplicate chain sequence: {key}")
        for entry in entries:
            row = {"id": uuid4(), "decided_at": None, **entry}
            self.data["approvers"][row["id"]] = row

    async def insert_referrers(self, referrers: list[dict[str, Any]]) -> None:
        for referrer in referrers:
            row = {"id": uuid4(), **referrer}
            self.data["referrers"][row["id"]] = row

    async def get_document(self, document_id: UUID) -> ApprovalDocument | None:
        row = self.data["documents"].get(document_id)
        return ApprovalDocument(**copy.deepcopy(row)) if row else None

    async def get_chain_entry(
        self,
        document_id: UUID,
        approver_id: UUID,
        status: str,
    ) -> ApprovalDocumentApprover | None:
        for row in self._entries_of(document_id):
            if row["approver_id"] == approver_id and row["status"] == status:
                return ApprovalDocumentApprover(**row)
        return None

    async def get_chain_entry_by_sequence(
        self, document_id: UUID, sequence: int
    ) -> ApprovalDocumentApprover | None:
        for row in self._entries_of(document_id):
            if row["sequence"] == sequence:
                return ApprovalDocumentApprover(**row)
        return None

    async def list_chain_entries(self, document_id: UUID) -> list[ApprovalDocumentApprover]:
        return [ApprovalDocumentApprover(**row) for row in self._entries_of(document_id)]

    def _entries_of(self, document_id: UUID) -> list[dict[str, Any]]:
        rows = [r for r in self.data["approvers"].values() if r["document_id"] == document_id]
        return sorted(rows, key=lambda r: r["sequence"])

    async def update_chain_entry_status(
        self,
        entry_id: UUID,
        new_status: str,
        decided_at: datetime | None,
        expected_status: str,
    ) -> int:
        row = self.data["approvers"].get(entry_id)
        if row is None or row["status"] != expected_status:
            return 0
        row["status"] = new_status
        row["decided_at"] = decided_at
        return 1

    async def update_document(
        self,
        document_id: UUID,
        fields: dict[str, Any],
        expected_status: str | None = None,
        expected_step: int | None = None,
    ) -> int:
        row = self.data["documents"].get(document_id)
        if row is None:
            return 0
        if expected_status is not None and row["status"] != expected_status:
            return 0
        if expected_step is not None and row["current_step"] != expected_step:
            return 0
        row.update(fields)
        row["updated_at"] = _now()
        return 1

    async def insert_history(self, record: dict[str, Any]) -> None:
        row = {"id": uuid4(), "created_at": _now(), **record}
        self.data["histories"][row["id"]] = row

    async def list_referrers(self, document_id: UUID) -> list[ApprovalDocumentReferrer]:
        return [
            ApprovalDocumentReferrer(**row)
            for row in self.data["referrers"].values()
            if row["document_id"] == document_id
        ]

    async def list_histories(self, document_id: UUID) -> list[ApprovalHistory]:
        rows = [r for r in self.data["histories"].values() if r["document_id"] == document_id]
        return [ApprovalHistory(**row) for row in sorted(rows, key=lambda r: r["created_at"])]

    async def list_documents(
        self,
        user_id: UUID,
        box: DocumentBox,
        query: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[ApprovalDocument], int]:
        chain = [r for r in self.data["approvers"].values() if r["approver_id"] == user_id]
        in_chain = {r["document_id"] for r in chain}
        waiting = {r["document_id"] for r in chain if r["status"] == ApproverStatus.WAITING.value}
        decided = {
            r["document_id"]
            for r in chain
            if r["status"] in (ApproverStatus.APPROVED.value, ApproverStatus.REJECTED.value)
        }
        referred = {
            r["document_id"]
            for r in self.data["referrers"].values()
            if r["referrer_id"] == user_id
        }

        def in_box(doc: dict[str, Any]) -> bool:
            if box == DocumentBox.TO_REVIEW:
                return doc["id"] in waiting
            if box == DocumentBox.SUBMITTED:
                return doc["author_id"] == user_id
            if box == DocumentBox.COMPLETED:
                return doc["id"] in decided
            if box == DocumentBox.REFERRED:
                return doc["id"] in referred
            return doc["author_id"] == user_id or doc["id"] in in_chain or doc["id"] in referred

        docs = [d for d in self.data["documents"].values() if in_box(d)]
        if query:
            q = query.lower()
            docs = [
                d for d in docs if q in d["title"].lower() or q in d["document_type"].lower()
            ]
        docs.sort(key=lambda d: d["created_at"], reverse=True)

        page = docs[offset : offset + limit]
        return [ApprovalDocument(**copy.deepcopy(d)) for d in page], len(docs)

    # =========================================================================
    # 알림
    # =========================================================================

    async def insert_notification(self, fields: dict[str, Any]) -> UUID:
        row = {"id": uuid4(), "is_read": False, "created_at": _now(), **fields}
        self.data["notifications"][row["id"]] = row
        return row["id"]

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        row = self.data["notifications"].get(notification_id)
        return Notification(**row) if row else None

    async def list_notifications(
        self, recipient_id: UUID, unread_only: bool, limit: int
    ) -> list[Notification]:
        rows = [
            r
            for r in self.data["notifications"].values()
            if r["recipient_id"] == recipient_id and not (unread_only and r["is_read"])
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [Notification(**row) for row in rows[:limit]]

    async def count_unread_notifications(self, recipient_id: UUID) -> int:
        return sum(
            1
            for r in self.data["notifications"].values()
            if r["recipient_id"] == recipient_id and not r["is_read"]
        )

    async def mark_notifications_read(
        self, recipient_id: UUID, notification_id: UUID | None = None
    ) -> int:
        updated = 0
        for row in self.data["notifications"].values():
            if row["recipient_id"] != recipient_id or row["is_read"]:
                continue
            if notification_id is not None and row["id"] != notification_id:
                continue
            row["is_read"] = True
            updated += 1
        return updated
