"""Repository 패키지

Repository 패턴 구현체들을 모아둔 패키지.
"""

from eapproval.repositories.approval import (
    ApprovalRepository,
    IApprovalRepository,
    MockApprovalRepository,
    create_approval_repository,
)

__all__ = [
    "IApprovalRepository",
    "ApprovalRepository",
    "MockApprovalRepository",
    "create_approval_repository",
]
