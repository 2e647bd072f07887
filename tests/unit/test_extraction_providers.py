"""Unit tests for the Gemini and Groq extraction providers.

Tests use mocked SDK clients; no network calls are made.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from invoicedesk.extraction.gemini_provider import GeminiExtractionProvider
from invoicedesk.extraction.groq_provider import GroqExtractionProvider
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError

MODEL_REPLY = '{"vendor": {"name": "Acme Corp"}, "invoice": {"number": "INV-42", "date": "2024-01-15"}}'


@pytest.fixture
def settings() -> Settings:
    """Settings with both AI credentials configured."""
    return Settings(
        _env_file=None,
        gemini_api_key="gm-test",
        groq_api_key="gsk-test",
        ai_temperature=0.1,
        ai_max_tokens=1024,
        ai_timeout_seconds=30,
    )


@pytest.fixture
def storage(sample_pdf_bytes: bytes) -> AsyncMock:
    """Storage mock serving the sample PDF."""
    mock = AsyncMock()
    mock.download.return_value = sample_pdf_bytes
    return mock


class TestGeminiExtractionProvider:
    """Tests for GeminiExtractionProvider."""

    def test_requires_api_key(self, storage: AsyncMock) -> None:
        """Test that a missing key is refused before any client is built."""
        with patch("invoicedesk.extraction.gemini_provider.genai.Client") as mock_client_cls:
            with pytest.raises(ExtractionError, match="Gemini API key is not configured"):
                GeminiExtractionProvider(Settings(_env_file=None, gemini_api_key=""), storage)

        mock_client_cls.assert_not_called()

    def test_client_configuration(self, settings: Settings, storage: AsyncMock) -> None:
        """Test client is built with the key and a millisecond timeout."""
        with patch("invoicedesk.extraction.gemini_provider.genai.Client") as mock_client_cls:
            provider = GeminiExtractionProvider(settings, storage)

        assert provider.provider_name == "gemini"
        kwargs = mock_client_cls.call_args.kwargs
        assert kwargs["api_key"] == "gm-test"
        assert kwargs["http_options"].timeout == 30000

    @pytest.mark.asyncio
    async def test_extract_invoice_data(self, settings: Settings, storage: AsyncMock) -> None:
        """Test successful extraction through the async client."""
        with patch("invoicedesk.extraction.gemini_provider.genai.Client") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.aio.models.generate_content = AsyncMock(
                return_value=MagicMock(text=MODEL_REPLY)
            )
            mock_client_cls.return_value = mock_client

            provider = GeminiExtractionProvider(settings, storage)
            result = await provider.extract_invoice_data("file-1")

        assert result.vendor["name"] == "Acme Corp"
        assert result.invoice["number"] == "INV-42"

        call = mock_client.aio.models.generate_content.call_args
        assert call.kwargs["model"] == settings.gemini_model
        assert "INV-42" in call.kwargs["contents"]
        assert call.kwargs["config"].temperature == 0.1
        assert call.kwargs["config"].max_output_tokens == 1024
        assert call.kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_api_error_is_reported_once(self, settings: Settings, storage: AsyncMock) -> None:
        """Test that an SDK failure surfaces as ExtractionError without retry."""
        with patch("invoicedesk.extraction.gemini_provider.genai.Client") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.aio.models.generate_content = AsyncMock(
                side_effect=RuntimeError("API key not valid")
            )
            mock_client_cls.return_value = mock_client

            provider = GeminiExtractionProvider(settings, storage)
            with pytest.raises(ExtractionError, match="Gemini AI extraction failed"):
                await provider.extract_invoice_data("file-1")

        assert mock_client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_text_response(self, settings: Settings, storage: AsyncMock) -> None:
        """Test that a response without text is an extraction failure."""
        with patch("invoicedesk.extraction.gemini_provider.genai.Client") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=None))
            mock_client_cls.return_value = mock_client

            provider = GeminiExtractionProvider(settings, storage)
            with pytest.raises(ExtractionError, match="No response received from Gemini"):
                await provider.extract_invoice_data("file-1")


class TestGroqExtractionProvider:
    """Tests for GroqExtractionProvider."""

    def test_requires_api_key(self, storage: AsyncMock) -> None:
        """Test that a missing key is refused with 503."""
        with pytest.raises(ExtractionError, match="Groq API key is not configured") as exc_info:
            GroqExtractionProvider(Settings(_env_file=None, groq_api_key=""), storage)

        assert exc_info.value.status_code == 503

    def test_client_configuration(self, settings: Settings, storage: AsyncMock) -> None:
        """Test the OpenAI client points at Groq and never retries."""
        with patch("invoicedesk.extraction.groq_provider.AsyncOpenAI") as mock_client_cls:
            provider = GroqExtractionProvider(settings, storage)

        assert provider.provider_name == "groq"
        mock_client_cls.assert_called_once_with(
            api_key="gsk-test",
            base_url="https://api.groq.com/openai/v1",
            timeout=30,
            max_retries=0,
        )

    @pytest.mark.asyncio
    async def test_extract_invoice_data(self, settings: Settings, storage: AsyncMock) -> None:
        """Test successful extraction through chat completions."""
        with patch("invoicedesk.extraction.groq_provider.AsyncOpenAI") as mock_client_cls:
            mock_client = MagicMock()
            mock_message = MagicMock(content=f"```json\n{MODEL_REPLY}\n```")
            mock_client.chat.completions.create = AsyncMock(
                return_value=MagicMock(choices=[MagicMock(message=mock_message)])
            )
            mock_client_cls.return_value = mock_client

            provider = GroqExtractionProvider(settings, storage)
            result = await provider.extract_invoice_data("file-1")

        assert result.vendor["name"] == "Acme Corp"
        assert result.invoice["date"] == "2024-01-15"

        call = mock_client.chat.completions.create.call_args
        assert call.kwargs["model"] == settings.groq_model
        assert call.kwargs["messages"][0]["role"] == "user"
        assert call.kwargs["temperature"] == 0.1
        assert call.kwargs["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_no_choices(self, settings: Settings, storage: AsyncMock) -> None:
        """Test that a completion without choices is an extraction failure."""
        with patch("invoicedesk.extraction.groq_provider.AsyncOpenAI") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.chat.completions.create = AsyncMock(return_value=MagicMock(choices=[]))
            mock_client_cls.return_value = mock_client

            provider = GroqExtractionProvider(settings, storage)
            with pytest.raises(ExtractionError, match="No response received from Groq"):
                await provider.extract_invoice_data("file-1")
