from fastapi import APIRouter

from eapproval.api.v1.endpoints import approvals, notifications

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(approvals.router)
api_router.include_router(notifications.router)
