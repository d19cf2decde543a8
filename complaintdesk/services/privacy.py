"""PII masking for text that leaves the system boundary.

Complaint descriptions are masked before they are sent to the generative
endpoint, the embedding endpoint or the vector store, and before they are
placed into Q&A context.  Log redaction helpers for provider bodies and
keyed URLs live here as well.
"""

from __future__ import annotations

import re
from typing import Final

# ---------------------------------------------------------------------------
# PII sanitisation patterns
# ---------------------------------------------------------------------------

EMAIL_PLACEHOLDER: Final[str] = "[email hidden]"
PHONE_PLACEHOLDER: Final[str] = "[phone hidden]"

# Email addresses (basic pattern).
_EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"
)

# Any run of 7-15 digits, optionally starting with ``+`` and with single
# spaces or dashes between digits, not touching another digit.  Loose on
# purpose: account numbers and similar get masked too.
_PHONE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?<!\d)\+?\d(?:[\s-]?\d){6,14}(?!\d)"
)

_MAX_LOGGED_BODY: Final[int] = 500


def mask_email(text: str) -> str:
    """Replace email addresses in *text* with a placeholder."""
    return _EMAIL_PATTERN.sub(EMAIL_PLACEHOLDER, text)


def mask_phone(text: str) -> str:
    """Replace phone-like digit runs in *text* with a placeholder.

    ``Call +91 98765-43210`` becomes ``Call [phone hidden]``.
    """
    return _PHONE_PATTERN.sub(PHONE_PLACEHOLDER, text)


def mask_pii(text: str | None) -> str | None:
    """Apply all PII masking routines to *text*.

    Order matters: emails first, so digits inside an address are not
    half-masked as a phone number.  Empty or blank input is returned
    unchanged.
    """
    if text is None or not text.strip():
        return text
    return mask_phone(mask_email(text))


# ---------------------------------------------------------------------------
# Log redaction
# ---------------------------------------------------------------------------


def truncate_body(body: str | None, limit: int = _MAX_LOGGED_BODY) -> str:
    """Bound a provider response body before it is logged."""
    if body is None:
        return "<empty>"
    return body if len(body) <= limit else body[:limit] + "..."


def mask_url_key(url: str) -> str:
    """Hide the value of a ``key=`` query parameter in *url*."""
    return re.sub(r"([?&]key=)[^&]*", r"\1****", url)
