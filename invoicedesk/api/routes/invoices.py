"""Invoice CRUD and search endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from invoicedesk.api.dependencies import get_repository
from invoicedesk.api.responses import ApiResponse, Pagination
from invoicedesk.invoices.repository import MAX_LIMIT, InvoiceRepository
from invoicedesk.invoices.schema import InvoiceCreate, InvoiceUpdate

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])

SortField = Literal["createdAt", "updatedAt", "vendor.name", "invoice.number"]


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
async def list_invoices(
    q: str | None = Query(None, max_length=200, description="Vendor name or invoice number"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    repository: InvoiceRepository = Depends(get_repository),  # noqa: B008
) -> ApiResponse:
    """List invoices, optionally filtered by a case-insensitive search term."""
    result = await repository.search(
        query=q, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )

    return ApiResponse(
        success=True,
        data=[invoice.dump() for invoice in result.items],
        message=f"Found {len(result.items)} invoice(s)",
        pagination=Pagination(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )


@router.get("/{invoice_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def get_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_repository),  # noqa: B008
) -> ApiResponse:
    invoice = await repository.find_by_id(invoice_id)
    return ApiResponse(success=True, data=invoice.dump())


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
async def create_invoice(
    payload: InvoiceCreate,
    repository: InvoiceRepository = Depends(get_repository),  # noqa: B008
) -> ApiResponse:
    """Store a reviewed invoice. Returns 409 if the file already has one."""
    invoice = await repository.create(payload)
    return ApiResponse(
        success=True, data=invoice.dump(), message="Invoice created successfully"
    )


@router.put("/{invoice_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    repository: InvoiceRepository = Depends(get_repository),  # noqa: B008
) -> ApiResponse:
    """Apply a partial update. Omitted fields keep their stored values."""
    invoice = await repository.update(invoice_id, payload)
    return ApiResponse(
        success=True, data=invoice.dump(), message="Invoice updated successfully"
    )


@router.delete("/{invoice_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def delete_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_repository),  # noqa: B008
) -> ApiResponse:
    await repository.delete(invoice_id)
    return ApiResponse(success=True, message="Invoice deleted successfully")
