"""요청 단위 권한 컨텍스트"""

from dataclasses import dataclass
from uuid import UUID

from eapproval.models.profile import Profile, ProfileRole


@dataclass(frozen=True)
class AuthorizationContext:
    """요청마다 한 번 만들어 서비스에 명시적으로 전달하는 사용자/권한 정보"""

    user_id: UUID
    role: str = ProfileRole.USER.value
    full_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value

    @classmethod
    def from_profile(cls, profile: Profile) -> "AuthorizationContext":
        return cls(user_id=profile.id, role=profile.role, full_name=profile.full_name)
