"""Error taxonomy for the complaint desk.

Every error carries a stable ``error_code`` and a ``context`` dict that is
safe to log.  Messages are safe to show to end users; provider details
live only in ``context`` and in the logs.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    __slots__ = ()

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_CONFIG = "INVALID_CONFIG"
    GENERATION_FAILED = "GENERATION_FAILED"


class GenerationFailure(StrEnum):
    """Operator-facing reason a generateContent call failed."""

    __slots__ = ()

    NOT_CONFIGURED = "not_configured"
    UNREACHABLE = "unreachable"
    INVALID_CREDENTIALS = "invalid_credentials"
    ENDPOINT_NOT_FOUND = "endpoint_not_found"
    REQUEST_REJECTED = "request_rejected"
    SERVER_ERROR = "server_error"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"


class ExtractionFailure(StrEnum):
    """Why a description could not be turned into structured fields."""

    __slots__ = ()

    EMPTY_DESCRIPTION = "empty_description"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    JSON_PARSE_FAILED = "json_parse_failed"
    REQUIRED_FIELD_INVALID = "required_field_invalid"


# Remediation hints logged next to generation failures.
REMEDIATION_HINTS: dict[GenerationFailure, str] = {
    GenerationFailure.NOT_CONFIGURED: "Set GEMINI_API_KEY and GEMINI_API_URL.",
    GenerationFailure.INVALID_CREDENTIALS: "Gemini API key invalid or restricted. Check GCP console.",
    GenerationFailure.ENDPOINT_NOT_FOUND: "Model endpoint not found or API misconfigured.",
    GenerationFailure.REQUEST_REJECTED: "Gemini API request rejected. Check API key and payload.",
    GenerationFailure.SERVER_ERROR: "Gemini API server error. Retry later.",
    GenerationFailure.UNREACHABLE: "Gemini API unreachable. Check network egress.",
}


class ComplaintDeskError(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
            }
        }


class InputValidationError(ComplaintDeskError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.INVALID_INPUT, context)


class NotFoundError(ComplaintDeskError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.NOT_FOUND, context)


class ForbiddenError(ComplaintDeskError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.FORBIDDEN, context)


class ConfigurationError(ComplaintDeskError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.INVALID_CONFIG, context)


class GenerationFailedError(ComplaintDeskError):
    """The generative endpoint could not produce a usable answer.

    The user-facing message is always the same opaque text; ``failure``
    records the operator-facing reason.
    """

    PUBLIC_MESSAGE = "Complaint generation failed"

    def __init__(
        self,
        failure: GenerationFailure,
        context: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> None:
        self.failure = failure
        super().__init__(
            message or self.PUBLIC_MESSAGE,
            ErrorCode.GENERATION_FAILED,
            {**(context or {}), "failure": failure.value},
        )


class ExtractionError(GenerationFailedError):
    """Structured extraction rejected; nothing was persisted."""

    def __init__(
        self,
        kind: ExtractionFailure,
        context: dict[str, Any] | None = None,
        failure: GenerationFailure = GenerationFailure.MALFORMED_RESPONSE,
    ) -> None:
        self.kind = kind
        super().__init__(failure, {**(context or {}), "kind": kind.value})
