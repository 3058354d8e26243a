from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from eapproval.api.dependencies import (
    get_approval_repository,
    get_authorization_context,
    handle_service_error,
)
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas import ErrorResponse
from eapproval.schemas.approval import (
    ApprovalDocumentDetailResponse,
    ApprovalDocumentListResponse,
    DecideDocumentRequest,
    DecisionResponse,
    SubmitDocumentRequest,
    SubmitDocumentResponse,
)
from eapproval.services.approval_query_service import ApprovalQueryService
from eapproval.services.authorization import AuthorizationContext
from eapproval.services.decision_service import ApprovalDecisionService
from eapproval.services.submission_service import DocumentSubmissionService

router = APIRouter(prefix="/approvals", tags=["Approvals"])


def get_submission_service(
    repo: Annotated[IApprovalRepository, Depends(get_approval_repository)],
) -> DocumentSubmissionService:
    """DocumentSubmissionService 의존성"""
    return DocumentSubmissionService(repo)


def get_decision_service(
    repo: Annotated[IApprovalRepository, Depends(get_approval_repository)],
) -> ApprovalDecisionService:
    """ApprovalDecisionService 의존성"""
    return ApprovalDecisionService(repo)


def get_query_service(
    repo: Annotated[IApprovalRepository, Depends(get_approval_repository)],
) -> ApprovalQueryService:
    """ApprovalQueryService 의존성"""
    return ApprovalQueryService(repo)


@router.post(
    "",
    response_model=SubmitDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def submit_document(
    data: SubmitDocumentRequest,
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[DocumentSubmissionService, Depends(get_submission_service)],
) -> SubmitDocumentResponse:
    """결재 상신"""
    try:
        return await service.submit_document(ctx, data)
    except ValueError as e:
        handle_service_error(e)


@router.get(
    "",
    response_model=ApprovalDocumentListResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
async def list_documents(
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[ApprovalQueryService, Depends(get_query_service)],
    box: str = Query("all", description="all, to_review, submitted, completed, referred"),
    q: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApprovalDocumentListResponse:
    """결재함 목록 조회"""
    try:
        return await service.list_documents(ctx, box=box, query=q, page=page, limit=limit)
    except ValueError as e:
        handle_service_error(e)


@router.get(
    "/{document_id}",
    response_model=ApprovalDocumentDetailResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def get_document(
    document_id: UUID,
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[ApprovalQueryService, Depends(get_query_service)],
) -> ApprovalDocumentDetailResponse:
    """결재 문서 상세 조회"""
    try:
        return await service.get_document_detail(ctx, document_id)
    except ValueError as e:
        handle_service_error(e)


@router.post(
    "/{document_id}/decision",
    response_model=DecisionResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def decide_document(
    document_id: UUID,
    data: DecideDocumentRequest,
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[ApprovalDecisionService, Depends(get_decision_service)],
) -> DecisionResponse:
    """결재 승인/반려"""
    try:
        return await service.decide_document(ctx, document_id, data)
    except ValueError as e:
        handle_service_error(e)
