"""Gemini generateContent client for the complaint desk.

Talks to the Generative Language REST API directly over ``httpx``: the
prompt goes out as ``{"contents": [{"parts": [{"text": ...}]}]}`` with the
API key as the ``key`` query parameter, and the reply text is read from
``candidates[0].content.parts[0].text``.

Every failure is raised as :class:`GenerationFailedError` carrying a
:class:`GenerationFailure` reason.  Provider bodies are truncated and the
key is masked before anything is logged.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Final

import httpx
import orjson
import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from complaintdesk.errors import (
    REMEDIATION_HINTS,
    ConfigurationError,
    GenerationFailedError,
    GenerationFailure,
)
from complaintdesk.models.ai import GeminiErrorEnvelope, GenerateContentResponse
from complaintdesk.services.privacy import mask_url_key, truncate_body

if TYPE_CHECKING:
    from config.settings import Settings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_HEALTH_CHECK_PROMPT: Final[str] = "Respond with OK."
_INVALID_KEY_REASON: Final[str] = "API_KEY_INVALID"


def build_prompt(system_prompt: str, question: str, context: str) -> str:
    """Combine instructions, retrieved context and the question into one prompt."""
    return f"{system_prompt}\n\nContext:\n{context}\n\nQuestion: {question}"


def _error_reason(body: bytes) -> str | None:
    """Pull ``error.details[*].reason`` out of a Gemini error body."""
    if not body:
        return None
    try:
        envelope = GeminiErrorEnvelope.model_validate(orjson.loads(body))
    except (orjson.JSONDecodeError, ValidationError):
        return _INVALID_KEY_REASON if _INVALID_KEY_REASON.encode() in body else None
    for detail in envelope.error.details:
        if detail.reason:
            return detail.reason
    return None


def classify_status(status_code: int, body: bytes) -> GenerationFailure:
    """Map a non-2xx generateContent status onto a failure reason."""
    if status_code in (401, 403):
        return GenerationFailure.INVALID_CREDENTIALS
    if status_code == 404:
        return GenerationFailure.ENDPOINT_NOT_FOUND
    if status_code == 400:
        if (_error_reason(body) or "").upper() == _INVALID_KEY_REASON:
            return GenerationFailure.INVALID_CREDENTIALS
        return GenerationFailure.REQUEST_REJECTED
    if status_code >= 500:
        return GenerationFailure.SERVER_ERROR
    return GenerationFailure.REQUEST_REJECTED


class GeminiClient:
    """Async client for the Gemini ``generateContent`` endpoint.

    Parameters
    ----------
    api_key:
        Generative Language API key, sent as the ``key`` query parameter.
    api_url:
        Full ``.../models/{model}:generateContent`` URL without a key.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional ``httpx`` transport, used by tests to stub the wire.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str,
        *,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._api_url = api_url.strip()
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
    ) -> GeminiClient:
        return cls(
            settings.gemini_api_key,
            settings.gemini_api_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    # -- lifecycle ----------------------------------------------------------

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._api_url)

    # -- transport ----------------------------------------------------------

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _post(self, body: bytes) -> httpx.Response:
        return await self._client.post(
            self._api_url,
            params={"key": self._api_key},
            content=body,
        )

    def _fail(self, failure: GenerationFailure, **context: object) -> GenerationFailedError:
        logger.error(
            "llm.generate_failed",
            failure=failure.value,
            hint=REMEDIATION_HINTS.get(failure),
            url=mask_url_key(f"{self._api_url}?key={self._api_key}"),
            **context,
        )
        return GenerationFailedError(failure)

    # -- public API ---------------------------------------------------------

    async def generate(self, prompt: str) -> str:
        """Send *prompt* and return the first candidate's text."""
        if not self.configured:
            raise self._fail(GenerationFailure.NOT_CONFIGURED)

        start = time.perf_counter()
        payload = orjson.dumps({"contents": [{"parts": [{"text": prompt}]}]})

        try:
            response = await self._post(payload)
        except httpx.HTTPError as exc:
            raise self._fail(GenerationFailure.UNREACHABLE, error=type(exc).__name__) from exc

        if not response.is_success:
            failure = classify_status(response.status_code, response.content)
            raise self._fail(
                failure,
                status=response.status_code,
                body=truncate_body(response.text),
            )

        if not response.content.strip():
            raise self._fail(GenerationFailure.EMPTY_RESPONSE, status=response.status_code)

        try:
            parsed = GenerateContentResponse.model_validate(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError) as exc:
            raise self._fail(
                GenerationFailure.MALFORMED_RESPONSE,
                body=truncate_body(response.text),
            ) from exc

        text = parsed.text
        logger.info(
            "llm.generate",
            prompt_length=len(prompt),
            answer_length=len(text),
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return text

    async def generate_answer(self, system_prompt: str, question: str, context: str) -> str:
        """Answer *question* grounded in *context* under *system_prompt*."""
        return await self.generate(build_prompt(system_prompt, question, context))

    async def health_check(self) -> None:
        """Round-trip a trivial prompt; raise :class:`ConfigurationError` on failure."""
        logger.info("llm.health_check", url=mask_url_key(f"{self._api_url}?key={self._api_key}"))
        try:
            await self.generate(_HEALTH_CHECK_PROMPT)
        except GenerationFailedError as exc:
            raise ConfigurationError(
                f"Gemini health check failed: {exc.failure.value}",
                context=exc.context,
            ) from exc
        logger.info("llm.health_check_passed")
