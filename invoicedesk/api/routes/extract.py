"""AI extraction endpoint."""

import logging

from fastapi import APIRouter, Depends
from pydantic import Field

from invoicedesk.api import metrics
from invoicedesk.api.dependencies import get_extraction_service
from invoicedesk.api.responses import ApiResponse
from invoicedesk.extraction.factory import ProviderRegistry
from invoicedesk.extraction.service import ExtractionService
from invoicedesk.invoices.schema import CamelModel
from invoicedesk.shared.errors import AppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/extract", tags=["Extraction"])


class ExtractRequest(CamelModel):
    """Body of `POST /api/extract`."""

    file_id: str = Field(..., min_length=1, description="Id returned by the upload endpoint")
    model: str = Field(..., description="AI provider: gemini or groq")
    persist: bool = Field(False, description="Store the extracted invoice immediately")


@router.post("", response_model=ApiResponse, response_model_exclude_none=True)
async def extract_invoice(
    body: ExtractRequest,
    service: ExtractionService = Depends(get_extraction_service),  # noqa: B008
) -> ApiResponse:
    """Extract invoice fields from an uploaded PDF.

    ```bash
    curl -X POST "http://localhost:8000/api/extract" \\
         -H "Content-Type: application/json" \\
         -d '{"fileId": "...", "model": "gemini"}'
    ```

    The result is returned for review and is not stored unless `persist` is set.
    """
    # Unknown names share one label so the series count stays bounded
    model_label = body.model if body.model in ProviderRegistry.list_providers() else "unknown"

    try:
        outcome = await service.extract(body.file_id, body.model, persist=body.persist)
    except AppError as e:
        metrics.extraction_requests_total.labels(model=model_label, status="failed").inc()
        logger.warning(f"Extraction of {body.file_id} with {body.model} failed: {e.message}")
        raise

    metrics.extraction_requests_total.labels(model=model_label, status="success").inc()
    metrics.extraction_processing_duration_seconds.labels(model=model_label).observe(
        outcome.processing_time / 1000
    )

    data = {
        "extractedData": outcome.extracted_data,
        "processingTime": outcome.processing_time,
        "model": outcome.model,
    }
    if outcome.invoice is not None:
        data["invoice"] = outcome.invoice.dump()

    return ApiResponse(
        success=True,
        data=data,
        message=f"Invoice data extracted successfully using {outcome.model}",
    )
