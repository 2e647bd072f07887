"""File upload endpoints: store, inspect, download, view and delete PDFs."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from invoicedesk.api import metrics
from invoicedesk.api.dependencies import get_app_settings, get_storage
from invoicedesk.api.responses import ApiResponse
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ValidationError
from invoicedesk.storage.base import FileMetadata, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])

PDF_MIME_TYPE = "application/pdf"

_EMBED_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _content_disposition(disposition: str, file_name: str) -> str:
    ascii_name = file_name.encode("ascii", "replace").decode("ascii").replace('"', "")
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name)}"


def _frame_ancestors(settings: Settings) -> str:
    origins = settings.cors_origin_list
    if "*" in origins:
        return "frame-ancestors *"
    return "frame-ancestors " + " ".join(["'self'", *origins])


def _validate_pdf(pdf: UploadFile | None) -> UploadFile:
    if pdf is None or not pdf.filename:
        raise ValidationError("No file uploaded. Please upload a PDF file")
    if not pdf.filename.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are allowed")
    if pdf.content_type != PDF_MIME_TYPE:
        raise ValidationError("Invalid file type. Only PDF files are allowed")
    return pdf


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
async def upload_file(
    pdf: UploadFile | None = File(None, description="PDF invoice (form field 'pdf')"),  # noqa: B008
    storage: StorageProvider = Depends(get_storage),  # noqa: B008
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> ApiResponse:
    """Upload a PDF invoice.

    ```bash
    curl -X POST "http://localhost:8000/api/upload" -F "pdf=@invoice.pdf;type=application/pdf"
    ```

    - Returns 400 if no file is sent, the file is not a PDF (extension and MIME
      type are both checked), the file is empty or exceeds the size limit
    - Returns 500 if the storage backend rejects the write
    """
    try:
        pdf = _validate_pdf(pdf)

        # Read one byte past the limit so oversize files are detected without buffering them
        content = await pdf.read(settings.max_file_size + 1)
        if not content:
            raise ValidationError("Uploaded file is empty")
        if len(content) > settings.max_file_size:
            max_mb = round(settings.max_file_size / (1024 * 1024))
            raise ValidationError(f"File too large. Maximum size allowed is {max_mb}MB")
    except ValidationError:
        metrics.documents_uploaded_total.labels(status="rejected").inc()
        raise

    metrics.document_upload_size_bytes.observe(len(content))

    try:
        file_metadata = await storage.upload(content, pdf.filename or "document.pdf", PDF_MIME_TYPE)
    except Exception:
        metrics.documents_uploaded_total.labels(status="failed").inc()
        raise

    metrics.documents_uploaded_total.labels(status="success").inc()

    return ApiResponse(
        success=True,
        data=file_metadata.model_dump(
            mode="json",
            by_alias=True,
            include={"file_id", "file_name", "file_size", "uploaded_at"},
        ),
        message="File uploaded successfully",
    )


@router.get("/{file_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def get_file_info(
    file_id: str,
    storage: StorageProvider = Depends(get_storage),  # noqa: B008
) -> ApiResponse:
    """Get stored file metadata. Returns 404 if the file is unknown."""
    file_info: FileMetadata = await storage.get_file_info(file_id)
    return ApiResponse(
        success=True,
        data=file_info.model_dump(mode="json", by_alias=True, exclude_none=True),
        message="File information retrieved successfully",
    )


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    storage: StorageProvider = Depends(get_storage),  # noqa: B008
) -> Response:
    """Download a file as an attachment."""
    file_info = await storage.get_file_info(file_id)
    content = await storage.download(file_id)

    return Response(
        content=content,
        media_type=file_info.mime_type,
        headers={"Content-Disposition": _content_disposition("attachment", file_info.file_name)},
    )


@router.options("/{file_id}/view")
async def view_file_preflight(file_id: str) -> Response:
    """CORS preflight for embedding the viewer in another origin."""
    return Response(
        status_code=status.HTTP_200_OK,
        headers={**_EMBED_HEADERS, "Access-Control-Max-Age": "86400"},
    )


@router.get("/{file_id}/view")
async def view_file(
    file_id: str,
    storage: StorageProvider = Depends(get_storage),  # noqa: B008
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> Response:
    """Serve a file inline so the review UI can embed it in an iframe."""
    file_info = await storage.get_file_info(file_id)
    content = await storage.download(file_id)

    logger.debug(f"Serving {file_id} inline ({len(content)} bytes)")

    return Response(
        content=content,
        media_type=file_info.mime_type,
        headers={
            **_EMBED_HEADERS,
            "Content-Disposition": _content_disposition("inline", file_info.file_name),
            "Cache-Control": "public, max-age=3600",
            "Content-Security-Policy": _frame_ancestors(settings),
        },
    )


@router.delete("/{file_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def delete_file(
    file_id: str,
    storage: StorageProvider = Depends(get_storage),  # noqa: B008
) -> ApiResponse:
    """Delete a stored file. Invoices referencing it are not touched."""
    await storage.delete(file_id)
    return ApiResponse(success=True, message="File deleted successfully")
