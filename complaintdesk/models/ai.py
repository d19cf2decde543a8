"""Wire and transient models for the AI pipeline.

Provider replies are parsed into these models instead of being walked
as nested dicts; a missing expected key fails validation and is treated
as a malformed response by the caller.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _stringify(value: Any) -> Any:
    # LLMs occasionally emit numbers or booleans where a string is asked for.
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return value


# ---------------------------------------------------------------------------
# Structured extraction output
# ---------------------------------------------------------------------------


class LabelledComplaintFields(BaseModel):
    """Field bag for the labelled path (priority LOW..CRITICAL)."""

    model_config = ConfigDict(extra="ignore")

    category: str | None = None
    sub_category: str | None = None
    specific_category: str | None = None
    block: str | None = None
    sub_block: str | None = None
    room_no: str | None = None
    room_type: str | None = None
    building_code: str | None = None
    priority_level: str | None = None
    message_type: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _stringify(value)


class ScoredComplaintFields(BaseModel):
    """Field bag for the scored path (priority 1-10, camelCase keys)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category: str | None = None
    sub_category: str | None = Field(default=None, alias="subCategory")
    room_no: str | None = Field(default=None, alias="roomNo")
    block: str | None = None
    room_type: str | None = Field(default=None, alias="roomType")
    priority_level: int | None = Field(default=None, alias="priorityLevel")
    assigned_team: str | None = Field(default=None, alias="assignedTeam")
    preferred_time_slot: str | None = Field(default=None, alias="preferredTimeSlot")

    @field_validator("category", "sub_category", "room_no", "block", "room_type",
                     "assigned_team", "preferred_time_slot", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("priority_level", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None


# ---------------------------------------------------------------------------
# Gemini generateContent
# ---------------------------------------------------------------------------


class GeminiPart(BaseModel):
    text: str


class GeminiContent(BaseModel):
    parts: list[GeminiPart] = Field(..., min_length=1)


class GeminiCandidate(BaseModel):
    content: GeminiContent


class GenerateContentResponse(BaseModel):
    candidates: list[GeminiCandidate] = Field(..., min_length=1)

    @property
    def text(self) -> str:
        return self.candidates[0].content.parts[0].text


class GeminiErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: str | None = None


class GeminiErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str | None = None
    details: list[GeminiErrorDetail] = Field(default_factory=list)


class GeminiErrorEnvelope(BaseModel):
    error: GeminiErrorBody


# ---------------------------------------------------------------------------
# Gemini embedContent
# ---------------------------------------------------------------------------


class EmbeddingValues(BaseModel):
    values: list[float] = Field(..., min_length=1)


class EmbedContentResponse(BaseModel):
    embedding: EmbeddingValues


# ---------------------------------------------------------------------------
# Chroma
# ---------------------------------------------------------------------------


class ChromaCollection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class ChromaQueryResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadatas: list[list[dict[str, Any] | None] | None] | None = None
    distances: list[list[float | None] | None] | None = None

    def first_metadatas(self) -> list[dict[str, Any] | None]:
        return (self.metadatas or [None])[0] or []

    def first_distances(self) -> list[float | None]:
        return (self.distances or [None])[0] or []
