"""
Adapter: Gemini coaching advice.

Implements AdvicePort.
Renders the coaching context with the YAML prompts and calls the Gemini
``generateContent`` REST endpoint with httpx. Empty answers are retried
like transport errors.
"""

import logging
from typing import Any, Optional

import httpx

from app.domain.coaching.entities import CoachingContext
from app.domain.coaching.errors import AdviceError
from app.domain.coaching.ports import AdvicePort
from app.infrastructure.coaching.prompt_loader import PromptLoader
from app.shared.retry import DEFAULT_BASE_DELAY, RetryExhaustedError, retry_with_backoff

logger = logging.getLogger(__name__)


class GeminiAdviceAdapter(AdvicePort):
    """Concrete advice gateway backed by a Gemini text model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-lite",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.4,
        max_tokens: int = 1024,
        max_attempts: int = 2,
        base_delay: float = DEFAULT_BASE_DELAY,
        timeout: float = 30.0,
        prompt_loader: Optional[PromptLoader] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the advice adapter.

        Args:
            api_key: Gemini API key.
            model: Generation model name.
            base_url: Root of the Gemini REST API.
            temperature: Sampling temperature.
            max_tokens: Output token cap.
            max_attempts: Attempts per request, including the first.
            base_delay: First retry delay in seconds.
            timeout: HTTP timeout in seconds.
            prompt_loader: Prompt source. The bundled prompts are used if omitted.
            http_client: Optional shared client. One is opened per call if omitted.
        """
        if not api_key:
            logger.warning("Gemini API key is not set; coaching calls will fail")
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._timeout = timeout
        self._prompt_loader = prompt_loader or PromptLoader()
        self._http_client = http_client

    async def generate(self, context: CoachingContext) -> str:
        """Return coaching text for the context.

        Raises:
            AdviceError: If every attempt failed or returned no text.
        """
        body = {
            "systemInstruction": {
                "parts": [{"text": self._prompt_loader.get_system_prompt()}]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": self._prompt_loader.render_user_prompt(context)}],
                }
            ],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_tokens,
            },
        }

        try:
            return await retry_with_backoff(
                lambda: self._complete(body),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                retry_on=(httpx.HTTPError, AdviceError),
                label="Gemini coaching request",
            )
        except RetryExhaustedError as exc:
            raise AdviceError(f"Failed to generate coaching {exc}") from exc

    async def _complete(self, body: dict[str, Any]) -> str:
        headers = {"x-goog-api-key": self._api_key}

        if self._http_client is not None:
            response = await self._http_client.post(self._url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=body, headers=headers)

        response.raise_for_status()
        try:
            text = self._extract_text(response.json())
        except (ValueError, TypeError, AttributeError, KeyError) as exc:
            raise AdviceError("Invalid response from Gemini API") from exc
        if not text.strip():
            raise AdviceError("Empty response from Gemini API")
        return text.strip()

    @staticmethod
    def _extract_text(payload: Any) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
