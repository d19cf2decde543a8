"""Field normalization for model-extracted complaint data.

Every value coming back from the generative endpoint passes through one
of these functions before it can become part of a :class:`Complaint`.
Enum lookups return a :class:`Normalized` tag so the caller decides per
field whether a miss is a hard rejection or a logged default.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Generic, TypeVar

import structlog

from complaintdesk.models.enums import Category, MessageType, PriorityLevel

logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=StrEnum)
T = TypeVar("T")


class Outcome(StrEnum):
    __slots__ = ()

    OK = "ok"
    DEFAULTED = "defaulted"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class Normalized(Generic[T]):
    """Tagged normalization result.

    ``value`` is ``None`` only when ``outcome`` is ``REJECTED``.
    """

    outcome: Outcome
    value: T | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.REJECTED


def ok(value: T) -> Normalized[T]:
    return Normalized(Outcome.OK, value)


def defaulted(value: T) -> Normalized[T]:
    return Normalized(Outcome.DEFAULTED, value)


def rejected() -> Normalized[T]:
    return Normalized(Outcome.REJECTED)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Fixed, total mapping from category to the team that handles it.
TEAM_BY_CATEGORY: Final[dict[Category, str]] = {
    Category.PLUMBING: "Plumber Team",
    Category.ELECTRICAL: "Electrician Team",
    Category.RAGGING: "Warden Team",
    Category.CARPENTRY: "Carpenter Team",
    Category.GENERAL: "Admin Team",
}

# The labelled path never offers GENERAL to the model.
LABELLED_CATEGORIES: Final[frozenset[Category]] = frozenset(
    {Category.CARPENTRY, Category.ELECTRICAL, Category.PLUMBING, Category.RAGGING}
)

ROOM_TYPES: Final[dict[str, str]] = {"single": "Single", "double": "Double"}

DEFAULT_ROOM_TYPE: Final[str] = "Single"
DEFAULT_SUB_CATEGORY: Final[str] = "General"
DEFAULT_LOCATION: Final[str] = "UNKNOWN"
DEFAULT_TIME_SLOT: Final[str] = "Any"
DEFAULT_PRIORITY_SCORE: Final[int] = 5
PRIORITY_SCORE_RANGE: Final[range] = range(1, 11)


# ---------------------------------------------------------------------------
# Primitive cleaners
# ---------------------------------------------------------------------------


def clean_value(raw: str | None) -> str | None:
    """Trim *raw*; empty and the literal ``"null"`` become ``None``."""
    if raw is None:
        return None
    trimmed = raw.strip()
    if not trimmed or trimmed.lower() == "null":
        return None
    return trimmed


def normalize_enum_value(raw: str | None) -> str | None:
    """Canonical enum spelling: ``"in progress"`` -> ``"IN_PROGRESS"``."""
    cleaned = clean_value(raw)
    if cleaned is None:
        return None
    return cleaned.upper().replace("-", "_").replace(" ", "_")


def lookup_enum(enum_cls: type[E], raw: str | None, allowed: frozenset[E] | None = None) -> Normalized[E]:
    """Match *raw* against *enum_cls* by member value; reject on any miss."""
    key = normalize_enum_value(raw)
    if key is None:
        return rejected()
    try:
        member = enum_cls(key)
    except ValueError:
        return rejected()
    if allowed is not None and member not in allowed:
        return rejected()
    return ok(member)


# ---------------------------------------------------------------------------
# Per-field normalizers
# ---------------------------------------------------------------------------


def normalize_labelled_category(raw: str | None) -> Normalized[Category]:
    return lookup_enum(Category, raw, LABELLED_CATEGORIES)


def normalize_message_type(raw: str | None) -> Normalized[MessageType]:
    return lookup_enum(MessageType, raw)


def normalize_priority_label(raw: str | None) -> Normalized[PriorityLevel]:
    return lookup_enum(PriorityLevel, raw)


def normalize_scored_category(raw: str | None) -> Normalized[Category]:
    """Scored-path category: anything unmatched falls back to GENERAL."""
    result = lookup_enum(Category, raw)
    if result.ok:
        return result
    if clean_value(raw) is not None:
        logger.warning("normalization.category_defaulted", received=raw, default=Category.GENERAL.value)
    return defaulted(Category.GENERAL)


def normalize_room_type(raw: str | None) -> Normalized[str]:
    cleaned = clean_value(raw)
    if cleaned is None:
        return defaulted(DEFAULT_ROOM_TYPE)
    canonical = ROOM_TYPES.get(cleaned.lower())
    if canonical is None:
        logger.warning("normalization.room_type_defaulted", received=raw, default=DEFAULT_ROOM_TYPE)
        return defaulted(DEFAULT_ROOM_TYPE)
    return ok(canonical)


def normalize_priority_score(raw: int | None) -> Normalized[int]:
    if raw is None or raw not in PRIORITY_SCORE_RANGE:
        return defaulted(DEFAULT_PRIORITY_SCORE)
    return ok(raw)


def normalize_text(raw: str | None, fallback: str) -> Normalized[str]:
    cleaned = clean_value(raw)
    if cleaned is None:
        return defaulted(fallback)
    return ok(cleaned)


def resolve_assigned_team(category: Category) -> str:
    return TEAM_BY_CATEGORY[category]
