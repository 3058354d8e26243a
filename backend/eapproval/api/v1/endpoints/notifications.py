from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from eapproval.api.dependencies import (
    get_approval_repository,
    get_authorization_context,
    handle_service_error,
)
from eapproval.repositories.approval import IApprovalRepository
from eapproval.schemas import ErrorResponse
from eapproval.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from eapproval.services.authorization import AuthorizationContext
from eapproval.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(
    repo: Annotated[IApprovalRepository, Depends(get_approval_repository)],
) -> NotificationService:
    """NotificationService 의존성"""
    return NotificationService(repo)


@router.get(
    "",
    response_model=NotificationListResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def list_notifications(
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
) -> NotificationListResponse:
    """내 알림 목록"""
    try:
        return await service.list_notifications(ctx, unread_only=unread_only, limit=limit)
    except ValueError as e:
        handle_service_error(e)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def mark_notification_read(
    notification_id: UUID,
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> NotificationResponse:
    """알림 읽음 처리"""
    try:
        return await service.mark_read(ctx, notification_id)
    except ValueError as e:
        handle_service_error(e)


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def mark_all_notifications_read(
    ctx: Annotated[AuthorizationContext, Depends(get_authorization_context)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> MarkAllReadResponse:
    """내 알림 전체 읽음 처리"""
    try:
        updated = await service.mark_all_read(ctx)
    except ValueError as e:
        handle_service_error(e)
    return MarkAllReadResponse(updated=updated)
