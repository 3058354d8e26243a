from eapproval.models.approval import (
    ApprovalAction,
    ApprovalDocument,
    ApprovalDocumentApprover,
    ApprovalDocumentReferrer,
    ApprovalHistory,
    ApproverStatus,
    DocumentBox,
    DocumentStatus,
)
from eapproval.models.notification import Notification, NotificationType
from eapproval.models.profile import Profile, ProfileRole

__all__ = [
    "Profile",
    "ProfileRole",
    "ApprovalAction",
    "ApprovalDocument",
    "ApprovalDocumentApprover",
    "ApprovalDocumentReferrer",
    "ApprovalHistory",
    "ApproverStatus",
    "DocumentBox",
    "DocumentStatus",
    "Notification",
    "NotificationType",
]
