"""결재 API 엔드포인트 단위 테스트

DB 의존 없이 서비스 레이어를 mock하여 API 동작(상태 코드, 에러 매핑, 응답 형식)만 검증합니다.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from eapproval.api.dependencies import get_auth_service, get_authorization_context
from eapproval.api.v1.endpoints.approvals import (
    get_decision_service,
    get_query_service,
    get_submission_service,
)
from eapproval.api.v1.endpoints.notifications import get_notification_service
from eapproval.core.exceptions import (
    AlreadyProcessedError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from eapproval.schemas.approval import (
    ApprovalDocumentListResponse,
    DecisionResponse,
    SubmitDocumentResponse,
)
from eapproval.schemas.common import PaginationMeta
from eapproval.schemas.notification import NotificationResponse
from eapproval.services.authorization import AuthorizationContext


# ===== 자체 Fixture (DB 불필요) =====


@pytest.fixture
def mock_ctx():
    """mock 권한 컨텍스트"""
    return AuthorizationContext(user_id=uuid4(), full_name="테스트 사용자")


@pytest.fixture
def mock_service():
    """서비스 mock"""
    return AsyncMock()


@pytest.fixture
async def api_client(mock_ctx, mock_service):
    """DB 독립적인 async client"""
    from eapproval.core.database import get_db
    from eapproval.main import app

    # get_db를 mock으로 오버라이드하여 DB 연결 방지
    async def mock_get_db():
        yield MagicMock()

    app.dependency_overrides[get_db] = mock_get_db
    app.dependency_overrides[get_authorization_context] = lambda: mock_ctx
    for dependency in (
        get_submission_service,
        get_decision_service,
        get_query_service,
        get_notification_service,
    ):
        app.dependency_overrides[dependency] = lambda: mock_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ===== POST /approvals =====


@pytest.mark.asyncio
async def test_submit_document_success(api_client: AsyncClient, mock_ctx, mock_service):
    document_id = uuid4()
    approver_id = uuid4()
    mock_service.submit_document.return_value = SubmitDocumentResponse(document_id=document_id)

    response = await api_client.post(
        "/api/v1/approvals",
        json={
            "title": "출장 신청",
            "documentType": "business_trip",
            "content": {"destination": "대전"},
            "approverIds": [str(approver_id)],
        },
    )

    assert response.status_code == 201
    assert response.json() == {"documentId": str(document_id)}

    ctx, data = mock_service.submit_document.call_args.args
    assert ctx == mock_ctx
    assert data.approver_ids == [approver_id]
    assert data.document_type == "business_trip"


@pytest.mark.asyncio
async def test_submit_document_validation_error(api_client: AsyncClient, mock_service):
    mock_service.submit_document.side_effect = ValidationError("결재자를 한 명 이상 지정해주세요.")

    response = await api_client.post(
        "/api/v1/approvals", json={"title": "출장 신청", "documentType": "business_trip"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "error": "VALIDATION_ERROR",
        "message": "결재자를 한 명 이상 지정해주세요.",
    }


@pytest.mark.asyncio
async def test_submit_document_malformed_approver_id(api_client: AsyncClient, mock_service):
    """UUID 형식이 아닌 결재자 ID는 요청 단계에서 거절"""
    response = await api_client.post(
        "/api/v1/approvals",
        json={"title": "출장 신청", "documentType": "business_trip", "approverIds": ["lee"]},
    )

    assert response.status_code == 422
    mock_service.submit_document.assert_not_called()


# ===== POST /approvals/{id}/decision =====


@pytest.mark.asyncio
async def test_decide_document_success(api_client: AsyncClient, mock_service):
    document_id = uuid4()
    next_approver = uuid4()
    mock_service.decide_document.return_value = DecisionResponse(
        document_id=document_id,
        new_status="pending",
        current_step=2,
        current_approver_id=next_approver,
    )

    response = await api_client.post(
        f"/api/v1/approvals/{document_id}/decision", json={"action": "approve"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "documentId": str(document_id),
        "newStatus": "pending",
        "currentStep": 2,
        "currentApproverId": str(next_approver),
    }


@pytest.mark.asyncio
async def test_decide_document_invalid_action(api_client: AsyncClient, mock_service):
    response = await api_client.post(
        f"/api/v1/approvals/{uuid4()}/decision", json={"action": "hold"}
    )

    assert response.status_code == 422
    mock_service.decide_document.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status_code, code",
    [
        (NotFoundError("문서를 찾을 수 없습니다."), 404, "DOCUMENT_NOT_FOUND"),
        (NotAuthorizedError("현재 결재자가 아닙니다."), 403, "NOT_CURRENT_APPROVER"),
        (AlreadyProcessedError("이미 처리된 문서입니다."), 409, "ALREADY_PROCESSED"),
        (StoreError("저장소 처리 중 오류가 발생했습니다."), 503, "STORE_ERROR"),
    ],
)
async def test_decide_document_error_mapping(
    api_client: AsyncClient, mock_service, error, status_code, code
):
    mock_service.decide_document.side_effect = error

    response = await api_client.post(
        f"/api/v1/approvals/{uuid4()}/decision", json={"action": "reject"}
    )

    assert response.status_code == status_code
    assert response.json()["detail"]["error"] == code


@pytest.mark.asyncio
async def test_decide_document_invalid_state_hides_detail(api_client: AsyncClient, mock_service):
    """내부 상태 불일치는 일반 메시지로 응답"""
    mock_service.decide_document.side_effect = InvalidStateError("결재선 정보가 문서 상태와 일치하지 않습니다.")

    response = await api_client.post(
        f"/api/v1/approvals/{uuid4()}/decision", json={"action": "approve"}
    )

    assert response.status_code == 500
    assert response.json()["detail"] == {
        "error": "INVALID_STATE",
        "message": "Internal server error",
    }


# ===== GET /approvals =====


@pytest.mark.asyncio
async def test_list_documents_passes_query(api_client: AsyncClient, mock_ctx, mock_service):
    mock_service.list_documents.return_value = ApprovalDocumentListResponse(
        items=[],
        meta=PaginationMeta(page=2, limit=10, total=11, total_pages=2),
    )

    response = await api_client.get(
        "/api/v1/approvals", params={"box": "to_review", "q": "출장", "page": 2, "limit": 10}
    )

    assert response.status_code == 200
    assert response.json()["meta"] == {"page": 2, "limit": 10, "total": 11, "totalPages": 2}
    mock_service.list_documents.assert_awaited_once_with(
        mock_ctx, box="to_review", query="출장", page=2, limit=10
    )


@pytest.mark.asyncio
async def test_get_document_permission_denied(api_client: AsyncClient, mock_service):
    mock_service.get_document_detail.side_effect = NotAuthorizedError(
        "문서 열람 권한이 없습니다.", code="PERMISSION_DENIED"
    )

    response = await api_client.get(f"/api/v1/approvals/{uuid4()}")

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "PERMISSION_DENIED"


# ===== /notifications =====


@pytest.mark.asyncio
async def test_mark_notification_read(api_client: AsyncClient, mock_ctx, mock_service):
    notification_id = uuid4()
    mock_service.mark_read.return_value = NotificationResponse(
        id=notification_id,
        recipient_id=mock_ctx.user_id,
        type="approval_request",
        content="결재 요청",
        link="/approvals/abc",
        is_read=True,
        created_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )

    response = await api_client.patch(f"/api/v1/notifications/{notification_id}/read")

    assert response.status_code == 200
    assert response.json()["isRead"] is True
    assert response.json()["recipientId"] == str(mock_ctx.user_id)


@pytest.mark.asyncio
async def test_mark_notification_read_not_found(api_client: AsyncClient, mock_service):
    mock_service.mark_read.side_effect = NotFoundError(
        "알림을 찾을 수 없습니다.", code="NOTIFICATION_NOT_FOUND"
    )

    response = await api_client.patch(f"/api/v1/notifications/{uuid4()}/read")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NOTIFICATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_mark_all_notifications_read(api_client: AsyncClient, mock_service):
    mock_service.mark_all_read.return_value = 4

    response = await api_client.post("/api/v1/notifications/read-all")

    assert response.status_code == 200
    assert response.json() == {"updated": 4}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path, service_method",
    [
        ("get", "/api/v1/notifications", "list_notifications"),
        ("post", "/api/v1/notifications/read-all", "mark_all_read"),
    ],
)
async def test_notifications_store_error(
    api_client: AsyncClient, mock_service, method, path, service_method
):
    getattr(mock_service, service_method).side_effect = StoreError()

    response = await getattr(api_client, method)(path)

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "STORE_ERROR"


# ===== 인증 =====


@pytest.fixture
async def auth_client():
    """인증 의존성만 mock한 client"""
    from eapproval.core.database import get_db
    from eapproval.main import app

    async def mock_get_db():
        yield MagicMock()

    auth_service = AsyncMock()
    app.dependency_overrides[get_db] = mock_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac, auth_service

    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_invalid_token_returns_401(auth_client):
    client, auth_service = auth_client
    auth_service.get_current_profile.side_effect = ValueError("INVALID_TOKEN")

    response = await client.get(
        "/api/v1/notifications", headers={"Authorization": "Bearer broken"}
    )

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_profile_store_error_is_not_reported_as_invalid_token(auth_client):
    """프로필 조회 중 저장소 오류는 503"""
    client, auth_service = auth_client
    auth_service.get_current_profile.side_effect = StoreError()

    response = await client.get(
        "/api/v1/notifications", headers={"Authorization": "Bearer valid"}
    )

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "STORE_ERROR"
