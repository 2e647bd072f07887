"""Response envelope shared by every /api endpoint."""

from typing import Any

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ApiResponse(BaseModel):
    """`{success, data?, error?, message?, pagination?, details?}` envelope.

    Routes declare `response_model_exclude_none=True` so absent parts are
    omitted rather than sent as null.
    """

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    pagination: Pagination | None = None
    details: list[str] | None = None
