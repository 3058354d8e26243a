"""DocumentSubmissionService 단위 테스트"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from eapproval.core.exceptions import ValidationError
from eapproval.models.approval import ApproverStatus, DocumentStatus
from eapproval.models.notification import NotificationType
from eapproval.schemas.approval import SubmitDocumentRequest
from eapproval.services.submission_service import DocumentSubmissionService


class TestDocumentSubmissionService:
    """DocumentSubmissionService 테스트"""

    @pytest.fixture
    def service(self, mock_repo):
        """DocumentSubmissionService 인스턴스 (mock repo 주입)"""
        return DocumentSubmissionService(mock_repo)

    def _request(self, profile_ids, approvers, **overrides) -> SubmitDocumentRequest:
        data = {
            "title": "3월 출장 신청",
            "document_type": "business_trip",
            "content": {"destination": "부산", "days": 2},
            "approver_ids": [profile_ids[name] for name in approvers],
        }
        data.update(overrides)
        return SubmitDocumentRequest(**data)

    # =========================================================================
    # 성공
    # =========================================================================

    @pytest.mark.asyncio
    async def test_submit_creates_document_and_chain(
        self, service, mock_data, profile_ids, ctx_of
    ):
        """상신 시 문서는 pending/step 1, 첫 결재자만 대기"""
        request = self._request(profile_ids, ["lee", "park", "jung"])

        response = await service.submit_document(ctx_of("kim"), request)

        document = mock_data["documents"][response.document_id]
        assert document["status"] == DocumentStatus.PENDING.value
        assert document["current_step"] == 1
        assert document["current_approver_id"] == profile_ids["lee"]
        assert document["author_id"] == profile_ids["kim"]
        assert document["content"] == {"destination": "부산", "days": 2}

        chain = sorted(
            (e for e in mock_data["approvers"].values() if e["document_id"] == response.document_id),
            key=lambda e: e["sequence"],
        )
        assert [e["sequence"] for e in chain] == [1, 2, 3]
        assert [e["approver_id"] for e in chain] == [
            profile_ids["lee"],
            profile_ids["park"],
            profile_ids["jung"],
        ]
        assert [e["status"] for e in chain] == [
            ApproverStatus.WAITING.value,
            ApproverStatus.NOT_REACHED.value,
            ApproverStatus.NOT_REACHED.value,
        ]

    @pytest.mark.asyncio
    async def test_submit_snapshots_approver_name_and_position(
        self, service, mock_data, profile_ids, ctx_of
    ):
        """결재자 이름/직급은 상신 시점 값으로 저장되고 이후 변경에 영향받지 않음"""
        response = await service.submit_document(
            ctx_of("kim"), self._request(profile_ids, ["lee"])
        )

        mock_data["profiles"][profile_ids["lee"]]["position"] = "차장"

        entry = next(
            e for e in mock_data["approvers"].values() if e["document_id"] == response.document_id
        )
        assert entry["approver_name"] == "이서연"
        assert entry["approver_position"] == "과장"

    @pytest.mark.asyncio
    async def test_submit_notifies_first_approver_only(
        self, service, mock_data, profile_ids, ctx_of
    ):
        """첫 결재자에게만 결재 요청 알림"""
        response = await service.submit_document(
            ctx_of("kim"), self._request(profile_ids, ["lee", "park"])
        )

        notifications = list(mock_data["notifications"].values())
        assert len(notifications) == 1
        assert notifications[0]["recipient_id"] == profile_ids["lee"]
        assert notifications[0]["type"] == NotificationType.APPROVAL_REQUEST.value
        assert notifications[0]["content"] == "새로운 '3월 출장 신청' 문서에 대한 결재가 요청되었습니다."
        assert notifications[0]["link"] == f"/approvals/{response.document_id}"

    @pytest.mark.asyncio
    async def test_submit_with_referrers(self, service, mock_data, profile_ids, ctx_of):
        """참조인 등록 (중복 제거, 미존재 ID는 건너뜀)"""
        request = self._request(
            profile_ids,
            ["lee"],
            referrer_ids=[profile_ids["choi"], profile_ids["choi"], uuid4()],
        )

        response = await service.submit_document(ctx_of("kim"), request)

        referrers = [
            r for r in mock_data["referrers"].values() if r["document_id"] == response.document_id
        ]
        assert len(referrers) == 1
        assert referrers[0]["referrer_id"] == profile_ids["choi"]
        assert referrers[0]["referrer_name"] == "최유나"

    @pytest.mark.asyncio
    async def test_submit_strips_title(self, service, mock_data, profile_ids, ctx_of):
        response = await service.submit_document(
            ctx_of("kim"), self._request(profile_ids, ["lee"], title="  주간 업무 보고  ")
        )

        assert mock_data["documents"][response.document_id]["title"] == "주간 업무 보고"

    # =========================================================================
    # 검증 실패
    # =========================================================================

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": ""},
            {"title": "   "},
            {"document_type": None},
            {"document_type": "unknown_form"},
        ],
    )
    async def test_submit_invalid_fields(
        self, service, mock_data, profile_ids, ctx_of, overrides
    ):
        """제목/문서 종류 오류 시 ValidationError, 아무것도 저장되지 않음"""
        request = self._request(profile_ids, ["lee"], **overrides)

        with pytest.raises(ValidationError):
            await service.submit_document(ctx_of("kim"), request)

        assert mock_data["documents"] == {}
        assert mock_data["approvers"] == {}
        assert mock_data["notifications"] == {}

    @pytest.mark.asyncio
    async def test_submit_without_approvers(self, service, mock_data, profile_ids, ctx_of):
        """결재자 없이 상신 불가"""
        with pytest.raises(ValidationError) as exc_info:
            await service.submit_document(ctx_of("kim"), self._request(profile_ids, []))

        assert str(exc_info.value) == "VALIDATION_ERROR"
        assert mock_data["documents"] == {}

    @pytest.mark.asyncio
    async def test_submit_duplicate_approvers(self, service, mock_data, profile_ids, ctx_of):
        """같은 결재자 중복 지정 불가"""
        with pytest.raises(ValidationError):
            await service.submit_document(
                ctx_of("kim"), self._request(profile_ids, ["lee", "park", "lee"])
            )

        assert mock_data["documents"] == {}

    @pytest.mark.asyncio
    async def test_submit_unknown_approver(self, service, mock_data, profile_ids, ctx_of):
        """존재하지 않는 결재자"""
        request = self._request(profile_ids, ["lee"])
        request.approver_ids.append(uuid4())

        with pytest.raises(ValidationError):
            await service.submit_document(ctx_of("kim"), request)

        assert mock_data["documents"] == {}
        assert mock_data["approvers"] == {}

    # =========================================================================
    # 부가 작업 실패 (best-effort)
    # =========================================================================

    @pytest.mark.asyncio
    async def test_submit_succeeds_when_referrer_insert_fails(
        self, service, mock_repo, mock_data, profile_ids, ctx_of
    ):
        """참조인 저장 실패해도 상신은 유지"""
        mock_repo.insert_referrers = AsyncMock(side_effect=RuntimeError("referrer store down"))
        request = self._request(profile_ids, ["lee"], referrer_ids=[profile_ids["choi"]])

        response = await service.submit_document(ctx_of("kim"), request)

        assert response.document_id in mock_data["documents"]
        assert mock_data["referrers"] == {}
        # 첫 결재자 알림은 정상 발송
        assert len(mock_data["notifications"]) == 1

    @pytest.mark.asyncio
    async def test_submit_succeeds_when_notification_fails(
        self, service, mock_repo, mock_data, profile_ids, ctx_of
    ):
        """알림 저장 실패해도 상신은 유지"""
        mock_repo.insert_notification = AsyncMock(side_effect=RuntimeError("notification down"))

        response = await service.submit_document(
            ctx_of("kim"), self._request(profile_ids, ["lee", "park"])
        )

        document = mock_data["documents"][response.document_id]
        assert document["status"] == DocumentStatus.PENDING.value
        assert len(mock_data["approvers"]) == 2
        assert mock_data["notifications"] == {}
        # 설정된 횟수만큼 재시도
        assert mock_repo.insert_notification.await_count == 2

    @pytest.mark.asyncio
    async def test_submit_chain_failure_rolls_back_document(
        self, service, mock_repo, mock_data, profile_ids, ctx_of
    ):
        """결재선 저장 실패 시 문서도 남지 않음"""
        mock_repo.insert_chain_entries = AsyncMock(side_effect=RuntimeError("chain write failed"))

        with pytest.raises(RuntimeError):
            await service.submit_document(
                ctx_of("kim"), self._request(profile_ids, ["lee", "park"])
            )

        assert mock_data["documents"] == {}
        assert mock_data["notifications"] == {}
