"""Text embeddings for duplicate detection and vector indexing.

The primary path calls the Gemini ``embedContent`` endpoint.  Whenever that
is unconfigured or fails, a deterministic 384-dimensional fallback vector is
produced from a stable hash of the text, so the same description always maps
to the same vector across processes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import httpx
import numpy as np
import orjson
import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from complaintdesk.errors import ExtractionFailure, InputValidationError
from complaintdesk.models.ai import EmbedContentResponse
from complaintdesk.services.privacy import truncate_body

if TYPE_CHECKING:
    from config.settings import Settings

logger = structlog.get_logger(__name__)

FALLBACK_DIM: Final[int] = 384


def stable_text_hash(text: str) -> int:
    """32-bit signed polynomial hash over UTF-16 code units.

    Same result as ``java.lang.String#hashCode``; unlike :func:`hash` it
    is not salted per process.
    """
    data = text.encode("utf-16-be", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def fallback_embedding(text: str, dim: int = FALLBACK_DIM) -> list[float]:
    """Deterministic embedding: ``sin(hash + i) / 10`` for each dimension ``i``."""
    offsets = np.arange(dim, dtype=np.int64) + stable_text_hash(text)
    values = (np.sin(offsets.astype(np.float64)) / 10.0).astype(np.float32)
    return values.tolist()


class EmbeddingClient:
    """Async Gemini embedding client with a local fallback.

    :meth:`embed` never raises.  :meth:`embed_strict` raises only for empty
    input, which the classification path treats as a validation error.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str,
        model: str = "models/embedding-001",
        *,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._api_url = api_url.strip()
        self._model = model
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> EmbeddingClient:
        return cls(
            settings.gemini_api_key,
            settings.gemini_embed_url,
            settings.gemini_embed_model,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._api_url)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _post(self, body: bytes) -> httpx.Response:
        return await self._client.post(self._api_url, params={"key": self._api_key}, content=body)

    async def _remote_embedding(self, text: str) -> list[float] | None:
        payload = orjson.dumps({"model": self._model, "content": {"parts": [{"text": text}]}})
        try:
            response = await self._post(payload)
        except httpx.HTTPError:
            logger.warning("embedding.request_failed", exc_info=True)
            return None

        if not response.is_success:
            logger.warning(
                "embedding.http_error",
                status=response.status_code,
                body=truncate_body(response.text),
            )
            return None

        try:
            parsed = EmbedContentResponse.model_validate(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError):
            logger.warning("embedding.malformed_response", body=truncate_body(response.text))
            return None
        return parsed.embedding.values

    async def embed(self, text: str) -> list[float]:
        """Return an embedding for *text*; the fallback vector on any failure.

        Empty or blank text yields an empty list.
        """
        if not text or not text.strip():
            return []

        if self.configured:
            values = await self._remote_embedding(text)
            if values is not None:
                logger.debug("embedding.generated", dimensions=len(values))
                return values

        logger.info("embedding.fallback_used", text_length=len(text))
        return fallback_embedding(text)

    async def embed_strict(self, text: str) -> list[float]:
        """Like :meth:`embed` but reject empty input."""
        if not text or not text.strip():
            raise InputValidationError(
                "Text cannot be empty",
                context={"kind": ExtractionFailure.EMPTY_DESCRIPTION.value},
            )
        return await self.embed(text)
