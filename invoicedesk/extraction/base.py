"""Abstract base class for AI extraction providers.

Enables switching between language-model backends (Gemini, Groq) per
extraction call while keeping one prompt contract and one repair path.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python

Every provider runs the same pipeline:
1. download the file through the injected storage provider
2. extract the PDF text layer
3. build the fixed extraction prompt
4. call the model (`_complete`, the only provider-specific step)
5. normalize the raw response into `{vendor, invoice}`
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from invoicedesk.extraction.normalizer import ExtractedInvoice, normalize_extraction
from invoicedesk.extraction.pdf_text import extract_pdf_text
from invoicedesk.extraction.prompt import build_extraction_prompt
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError
from invoicedesk.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class ExtractionProvider(ABC):
    """Abstract base class for invoice extraction providers.

    Subclasses must validate their credentials in `__init__` and raise
    ExtractionError when unconfigured, so a missing key fails before any
    network call.

    Example implementations:
    - GeminiExtractionProvider: Google Gemini API
    - GroqExtractionProvider: Groq-hosted Llama models
    """

    def __init__(self, settings: Settings, storage: StorageProvider) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
            storage: Storage provider used to fetch documents
        """
        self.settings = settings
        self.storage = storage

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier (e.g., 'gemini', 'groq')
        """

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send the prompt to the model and return its raw text response.

        Raises:
            Exception: Any client error; the caller wraps it in ExtractionError
        """

    async def extract_invoice_data(self, file_id: str) -> ExtractedInvoice:
        """Extract structured invoice data from a stored PDF.

        Args:
            file_id: Identifier issued by the storage provider

        Returns:
            Normalized vendor and invoice sections

        Raises:
            NotFoundError: If the file does not exist
            ExtractionError: If the PDF is unreadable or the model call fails
        """
        pdf_bytes = await self.storage.download(file_id)
        document_text = await asyncio.to_thread(extract_pdf_text, pdf_bytes)
        prompt = build_extraction_prompt(document_text)

        try:
            raw_response = await self._complete(prompt)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"{self.provider_name} extraction failed for {file_id}: {e}")
            raise ExtractionError(
                f"{self.provider_name.capitalize()} AI extraction failed: {e}"
            ) from e

        if not raw_response or not raw_response.strip():
            raise ExtractionError(f"No response received from {self.provider_name.capitalize()}")

        return normalize_extraction(raw_response)
