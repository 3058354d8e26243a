from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """에러 응답"""

    error: str
    message: str
    details: dict[str, Any] | None = None


class PaginationMeta(BaseModel):
    """페이지네이션 메타"""

    page: int
    limit: int
    total: int
    total_pages: int = Field(serialization_alias="totalPages")

    class Config:
        populate_by_name = True
