"""FastAPI dependencies resolving the components wired up in `create_app`."""

from fastapi import Request

from invoicedesk.extraction.service import ExtractionService
from invoicedesk.invoices.repository import InvoiceRepository
from invoicedesk.shared.config import Settings
from invoicedesk.shared.database import Database
from invoicedesk.storage.base import StorageProvider


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_repository(request: Request) -> InvoiceRepository:
    return request.app.state.repository


def get_extraction_service(request: Request) -> ExtractionService:
    return request.app.state.extraction_service


async def require_database(request: Request) -> None:
    """Reconnect to the document store before handling an /api request.

    The first request after a startup without MongoDB also creates the
    invoice indexes.

    Raises:
        DatabaseUnavailableError: If the store cannot be reached (503)
    """
    await get_database(request).ensure_connected()

    # Indexes are created once per process, on the first successful connection
    if not request.app.state.indexes_ready:
        await get_repository(request).ensure_indexes()
        request.app.state.indexes_ready = True
