"""Gemini-based extraction provider.

Uses the Google Gen AI SDK async client. Requires APP_GEMINI_API_KEY.
See: https://googleapis.github.io/python-genai/
"""

from google import genai
from google.genai import types

from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError
from invoicedesk.storage.base import StorageProvider


class GeminiExtractionProvider(ExtractionProvider):
    """Extraction through Google Gemini (gemini-1.5-flash by default)."""

    def __init__(self, settings: Settings, storage: StorageProvider) -> None:
        """Initialize Gemini extraction provider.

        Raises:
            ExtractionError: If APP_GEMINI_API_KEY is not set
        """
        super().__init__(settings, storage)
        if not settings.gemini_api_key:
            raise ExtractionError(
                "Gemini API key is not configured. Set APP_GEMINI_API_KEY.", status_code=503
            )

        self._model = settings.gemini_model
        self._client = genai.Client(
            api_key=settings.gemini_api_key,
            http_options=types.HttpOptions(timeout=int(settings.ai_timeout_seconds * 1000)),
        )

    @property
    def provider_name(self) -> str:
        return "gemini"

    async def _complete(self, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=self.settings.ai_temperature,
                max_output_tokens=self.settings.ai_max_tokens,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""
