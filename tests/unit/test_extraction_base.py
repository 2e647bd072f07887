"""Unit tests for the extraction provider base class.

Tests cover:
- Abstract base class enforcement
- The shared download → text → prompt → model → normalize pipeline
- Error wrapping for model failures and empty responses
"""

from unittest.mock import AsyncMock

import pytest

from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.extraction.prompt import EXTRACTION_PROMPT
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError, NotFoundError


class StubProvider(ExtractionProvider):
    """Provider returning a canned response and recording the prompt."""

    def __init__(self, settings: Settings, storage: AsyncMock, response: str = "") -> None:
        super().__init__(settings, storage)
        self.response = response
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "stub"

    async def _complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


@pytest.fixture
def storage(sample_pdf_bytes: bytes) -> AsyncMock:
    """Storage mock serving the sample PDF."""
    mock = AsyncMock()
    mock.download.return_value = sample_pdf_bytes
    return mock


def test_extraction_provider_is_abstract() -> None:
    """Test that ExtractionProvider cannot be instantiated directly."""
    with pytest.raises(TypeError, match="Can't instantiate abstract class"):
        ExtractionProvider(Settings(), AsyncMock())  # type: ignore[abstract]


def test_extraction_provider_requires_complete() -> None:
    """Test that concrete providers must implement the model call."""

    class IncompleteProvider(ExtractionProvider):
        @property
        def provider_name(self) -> str:
            return "incomplete"

        # Missing: _complete

    with pytest.raises(TypeError, match="Can't instantiate abstract class"):
        IncompleteProvider(Settings(), AsyncMock())  # type: ignore[abstract]


@pytest.mark.asyncio
async def test_pipeline_sends_document_text_and_normalizes(storage: AsyncMock) -> None:
    """Test that the PDF text reaches the prompt and the reply is normalized."""
    provider = StubProvider(
        Settings(),
        storage,
        response='```json\n{"vendor": {"name": "Acme Corp"}, "invoice": {"number": "INV-42"}}\n```',
    )

    result = await provider.extract_invoice_data("file-1")

    storage.download.assert_awaited_once_with("file-1")
    assert len(provider.prompts) == 1
    assert provider.prompts[0].startswith(EXTRACTION_PROMPT)
    assert "INV-42" in provider.prompts[0]
    assert result.vendor["name"] == "Acme Corp"
    assert result.invoice["number"] == "INV-42"
    assert result.invoice["lineItems"] == []


@pytest.mark.asyncio
async def test_missing_file_propagates(storage: AsyncMock) -> None:
    """Test that a storage NotFoundError is not wrapped."""
    storage.download.side_effect = NotFoundError("File not found")
    provider = StubProvider(Settings(), storage, response="{}")

    with pytest.raises(NotFoundError):
        await provider.extract_invoice_data("missing")


@pytest.mark.asyncio
async def test_model_failure_is_wrapped(storage: AsyncMock) -> None:
    """Test that client exceptions become ExtractionError naming the provider."""
    provider = StubProvider(Settings(), storage)
    provider._complete = AsyncMock(side_effect=RuntimeError("quota exceeded"))  # type: ignore[method-assign]

    with pytest.raises(ExtractionError, match="Stub AI extraction failed: quota exceeded"):
        await provider.extract_invoice_data("file-1")


@pytest.mark.asyncio
async def test_empty_response_raises(storage: AsyncMock) -> None:
    """Test that a blank model reply is an extraction failure."""
    provider = StubProvider(Settings(), storage, response="   ")

    with pytest.raises(ExtractionError, match="No response received from Stub"):
        await provider.extract_invoice_data("file-1")
