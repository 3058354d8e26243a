"""인증 관련 서비스 모듈"""

from eapproval.services.auth.auth_service import AuthService

__all__ = ["AuthService"]
