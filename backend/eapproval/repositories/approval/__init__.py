"""결재 Repository 패키지"""

from sqlalchemy.ext.asyncio import AsyncSession

from eapproval.repositories.approval.interface import IApprovalRepository
from eapproval.repositories.approval.mock_repository import MockApprovalRepository
from eapproval.repositories.approval.repository import ApprovalRepository

_mock_repository: MockApprovalRepository | None = None


def create_approval_repository(db: AsyncSession) -> IApprovalRepository:
    """결재 Repository 팩토리

    환경 설정에 따라 실제/Mock 저장소 반환.
    Mock 저장소는 프로세스 단위로 공유된다.

    Returns:
        IApprovalRepository 구현체
    """
    from eapproval.core.config import get_settings

    global _mock_repository
    if get_settings().use_mock_store:
        if _mock_repository is None:
            _mock_repository = MockApprovalRepository()
        return _mock_repository

    return ApprovalRepository(db)


__all__ = [
    "IApprovalRepository",
    "ApprovalRepository",
    "MockApprovalRepository",
    "create_approval_repository",
]
