from eapproval.schemas.approval import (
    ApprovalDocumentDetailResponse,
    ApprovalDocumentListResponse,
    ApprovalDocumentResponse,
    AttachmentDescriptor,
    DecideDocumentRequest,
    DecisionResponse,
    SubmitDocumentRequest,
    SubmitDocumentResponse,
)
from eapproval.schemas.common import ErrorResponse, PaginationMeta
from eapproval.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)

__all__ = [
    "ApprovalDocumentDetailResponse",
    "ApprovalDocumentListResponse",
    "ApprovalDocumentResponse",
    "AttachmentDescriptor",
    "DecideDocumentRequest",
    "DecisionResponse",
    "ErrorResponse",
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "PaginationMeta",
    "SubmitDocumentRequest",
    "SubmitDocumentResponse",
]
