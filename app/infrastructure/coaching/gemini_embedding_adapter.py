"""
Adapter: Gemini text embeddings.

Implements EmbeddingPort.
Calls the Gemini ``embedContent`` REST endpoint with httpx and checks
the returned vector against the expected dimension.
"""

import logging
from typing import Any, Optional

import httpx

from app.domain.coaching.errors import EmbeddingError
from app.domain.coaching.ports import EmbeddingPort
from app.shared.retry import DEFAULT_BASE_DELAY, RetryExhaustedError, retry_with_backoff

logger = logging.getLogger(__name__)

EXPECTED_DIMENSIONS = 768


class GeminiEmbeddingAdapter(EmbeddingPort):
    """Concrete embedding gateway backed by the Gemini API.

    Transport errors and non-2xx responses are retried with backoff.
    Malformed payloads and dimension mismatches fail immediately.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-004",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        dimensions: int = EXPECTED_DIMENSIONS,
        max_attempts: int = 3,
        base_delay: float = DEFAULT_BASE_DELAY,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the embedding adapter.

        Args:
            api_key: Gemini API key.
            model: Embedding model name.
            base_url: Root of the Gemini REST API.
            dimensions: Required vector length.
            max_attempts: Attempts per text, including the first.
            base_delay: First retry delay in seconds.
            timeout: HTTP timeout in seconds.
            http_client: Optional shared client. One is opened per call if omitted.
        """
        if not api_key:
            logger.warning("Gemini API key is not set; embedding calls will fail")
        self._api_key = api_key
        self._model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:embedContent"
        self._dimensions = dimensions
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._timeout = timeout
        self._http_client = http_client

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``.

        Raises:
            EmbeddingError: On a malformed result, a dimension mismatch, or
                once the retry budget is exhausted.
        """
        try:
            payload = await retry_with_backoff(
                lambda: self._post(text),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                retry_on=(httpx.HTTPError,),
                label="Gemini embedding request",
            )
        except RetryExhaustedError as exc:
            raise EmbeddingError(f"Failed to generate embedding {exc}") from exc

        return self._extract_vector(payload)

    async def _post(self, text: str) -> dict[str, Any]:
        body = {
            "model": f"models/{self._model}",
            "content": {"parts": [{"text": text}]},
        }
        headers = {"x-goog-api-key": self._api_key}

        if self._http_client is not None:
            response = await self._http_client.post(self._url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=body, headers=headers)

        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise EmbeddingError("Invalid embedding response from Gemini API") from exc

    def _extract_vector(self, payload: Any) -> list[float]:
        embedding = payload.get("embedding") if isinstance(payload, dict) else None
        values = embedding.get("values") if isinstance(embedding, dict) else None
        if not values or not isinstance(values, list):
            raise EmbeddingError("Invalid embedding response from Gemini API")

        if len(values) != self._dimensions:
            raise EmbeddingError(
                f"Expected {self._dimensions} dimensions, got {len(values)}"
            )
        try:
            return [float(v) for v in values]
        except (TypeError, ValueError) as exc:
            raise EmbeddingError("Invalid embedding response from Gemini API") from exc
