"""Groq-based extraction provider.

Groq exposes an OpenAI-compatible chat completions endpoint, so the OpenAI
SDK is used with Groq's base URL. Requires APP_GROQ_API_KEY.
See: https://console.groq.com/docs/openai
"""

from openai import AsyncOpenAI

from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError
from invoicedesk.storage.base import StorageProvider


class GroqExtractionProvider(ExtractionProvider):
    """Extraction through Groq-hosted Llama models."""

    def __init__(self, settings: Settings, storage: StorageProvider) -> None:
        """Initialize Groq extraction provider.

        Raises:
            ExtractionError: If APP_GROQ_API_KEY is not set
        """
        super().__init__(settings, storage)
        if not settings.groq_api_key:
            raise ExtractionError(
                "Groq API key is not configured. Set APP_GROQ_API_KEY.", status_code=503
            )

        self._model = settings.groq_model
        # max_retries=0: a failed call is reported once, never replayed
        self._client = AsyncOpenAI(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            timeout=settings.ai_timeout_seconds,
            max_retries=0,
        )

    @property
    def provider_name(self) -> str:
        return "groq"

    async def _complete(self, prompt: str) -> str:
        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.ai_temperature,
            max_tokens=self.settings.ai_max_tokens,
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
