"""공유 API dependencies - 엔드포인트 간 중복 제거"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from eapproval.core.database import get_db
from eapproval.core.exceptions import ApprovalError
from eapproval.models.profile import Profile
from eapproval.repositories.approval import IApprovalRepository, create_approval_repository
from eapproval.services.auth import AuthService
from eapproval.services.authorization import AuthorizationContext

logger = logging.getLogger(__name__)

security = HTTPBearer()


# ===== Repository Dependencies =====


def get_approval_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IApprovalRepository:
    """결재 Repository 의존성 (USE_MOCK_STORE 설정에 따라 Mock/SQL)"""
    return create_approval_repository(db)


# ===== Auth Dependencies =====


def get_auth_service(
    repo: Annotated[IApprovalRepository, Depends(get_approval_repository)],
) -> AuthService:
    """AuthService 의존성"""
    return AuthService(repo)


async def get_current_profile(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Profile:
    """현재 사용자 조회"""
    try:
        return await auth_service.get_current_profile(credentials.credentials)
    except ApprovalError as e:
        # 저장소 오류 등 토큰과 무관한 실패
        handle_service_error(e)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "INVALID_TOKEN", "message": "Invalid or expired token"},
        )


async def get_authorization_context(
    profile: Annotated[Profile, Depends(get_current_profile)],
) -> AuthorizationContext:
    """요청 단위 권한 컨텍스트"""
    return AuthorizationContext.from_profile(profile)


# ===== Service Error Handling =====

# 서비스 레이어에서 발생하는 에러 코드와 HTTP 응답 매핑
# (status_code, error_code, message)
SERVICE_ERROR_MAPPING: dict[str, tuple[int, str, str]] = {
    # 입력
    "VALIDATION_ERROR": (400, "VALIDATION_ERROR", "Validation error"),
    # 조회
    "DOCUMENT_NOT_FOUND": (404, "DOCUMENT_NOT_FOUND", "Approval document not found"),
    "NOTIFICATION_NOT_FOUND": (404, "NOTIFICATION_NOT_FOUND", "Notification not found"),
    # 권한
    "NOT_CURRENT_APPROVER": (403, "NOT_CURRENT_APPROVER", "Not the current approver"),
    "PERMISSION_DENIED": (403, "PERMISSION_DENIED", "Permission denied"),
    # 상태
    "ALREADY_PROCESSED": (409, "ALREADY_PROCESSED", "Document already processed"),
    "INVALID_STATE": (500, "INVALID_STATE", "Internal server error"),
    "STORE_ERROR": (503, "STORE_ERROR", "Storage temporarily unavailable"),
}

# 서비스 메시지를 그대로 노출하는 에러 코드 (나머지는 매핑 메시지 사용)
EXPOSE_SERVICE_MESSAGE = {
    "VALIDATION_ERROR",
    "DOCUMENT_NOT_FOUND",
    "NOTIFICATION_NOT_FOUND",
    "NOT_CURRENT_APPROVER",
    "PERMISSION_DENIED",
    "ALREADY_PROCESSED",
}


def handle_service_error(error: ValueError, default_message: str = "Validation error") -> None:
    """서비스 레이어 에러를 HTTPException으로 변환

    Args:
        error: 서비스에서 발생한 ValueError (에러 코드가 str로 전달됨)
        default_message: 매핑되지 않은 에러의 기본 메시지

    Raises:
        HTTPException: 매핑된 HTTP 에러 응답
    """
    error_code = str(error)

    if error_code in SERVICE_ERROR_MAPPING:
        status_code, code, message = SERVICE_ERROR_MAPPING[error_code]
        if isinstance(error, ApprovalError) and error_code in EXPOSE_SERVICE_MESSAGE:
            message = error.message
        if status_code >= 500:
            logger.error(f"Service error: code={error_code}, detail={error}")
        raise HTTPException(
            status_code=status_code,
            detail={"error": code, "message": message},
        )

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "VALIDATION_ERROR", "message": default_message},
    )
