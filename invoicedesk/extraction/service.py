"""Extraction orchestration: file lookup → AI extraction → optional persistence.

The extracted payload is returned as-is for the user to review; it is only
stored when the caller asks for it (`persist=True`), in which case the
repository validates it like any other create.
"""

import logging
import time
from typing import Any

from pydantic import BaseModel

from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.extraction.factory import ProviderRegistry
from invoicedesk.invoices.repository import InvoiceRepository
from invoicedesk.invoices.schema import Invoice
from invoicedesk.shared.errors import ExtractionError, ValidationError
from invoicedesk.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class ExtractionOutcome(BaseModel):
    """Result of one extraction request.

    Attributes:
        extracted_data: `{fileId, fileName, vendor, invoice}` ready for review
        processing_time: Wall time of the AI extraction in milliseconds
        model: Provider that performed the extraction
        invoice: Stored invoice when persistence was requested
    """

    extracted_data: dict[str, Any]
    processing_time: int
    model: str
    invoice: Invoice | None = None


class ExtractionService:
    """Runs extractions against the provider chosen per request."""

    def __init__(
        self,
        providers: dict[str, ExtractionProvider],
        storage: StorageProvider,
        repository: InvoiceRepository,
    ) -> None:
        self.providers = providers
        self.storage = storage
        self.repository = repository

    def available_models(self) -> list[str]:
        return list(self.providers.keys())

    def get_provider(self, model: str) -> ExtractionProvider:
        """Look up a configured provider.

        Raises:
            ValidationError: If the model name is not a known provider
            ExtractionError: If the provider is known but not configured (503)
        """
        provider = self.providers.get(model)
        if provider is not None:
            return provider
        if model in ProviderRegistry.list_providers():
            raise ExtractionError(
                f"AI provider '{model}' is not configured on this server", status_code=503
            )
        raise ValidationError(
            "Validation error",
            details=[f"model: must be one of {', '.join(ProviderRegistry.list_providers())}"],
        )

    async def extract(self, file_id: str, model: str, persist: bool = False) -> ExtractionOutcome:
        """Extract invoice fields from a stored file.

        Raises:
            NotFoundError: If the file does not exist in storage
            ExtractionError: If the provider is unavailable or the model call fails
            ConflictError: If persisting and the file already has an invoice
        """
        provider = self.get_provider(model)
        file_info = await self.storage.get_file_info(file_id)

        start_time = time.perf_counter()
        extracted = await provider.extract_invoice_data(file_id)
        duration_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(f"Extracted {file_id} with {model} in {duration_ms} ms")

        extracted_data = {
            "fileId": file_id,
            "fileName": file_info.file_name,
            "vendor": extracted.vendor,
            "invoice": extracted.invoice,
        }

        invoice = None
        if persist:
            invoice = await self.repository.create(extracted_data)

        return ExtractionOutcome(
            extracted_data=extracted_data,
            processing_time=duration_ms,
            model=model,
            invoice=invoice,
        )
