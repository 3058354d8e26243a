from uuid import UUID

from eapproval.core.security import decode_token
from eapproval.models.profile import Profile
from eapproval.repositories.approval import IApprovalRepository


class AuthService:
    """인증 서비스 (JWT access token → 프로필)

    토큰 발급/로그인은 인트라넷 인증 서버가 담당하며, 여기서는 검증만 한다.
    """

    def __init__(self, repo: IApprovalRepository):
        self.repo = repo

    async def get_profile_by_id(self, profile_id: UUID) -> Profile | None:
        """ID로 프로필 조회"""
        profiles = await self.repo.get_profiles([profile_id])
        return profiles[0] if profiles else None

    async def get_current_profile(self, access_token: str) -> Profile:
        """현재 사용자 조회"""
        payload = decode_token(access_token)
        if not payload or payload.get("type") != "access":
            raise ValueError("INVALID_TOKEN")

        subject = payload.get("sub")
        if not subject:
            raise ValueError("INVALID_TOKEN")

        try:
            profile_id = UUID(subject)
        except ValueError:
            raise ValueError("INVALID_TOKEN")

        profile = await self.get_profile_by_id(profile_id)
        if not profile:
            raise ValueError("USER_NOT_FOUND")

        return profile
