"""Structured extraction: free-text complaint description -> typed fields.

Two call paths exist and are kept apart:

* **labelled** -- snake_case keys, priority LOW..CRITICAL.  Category,
  message type and priority must all normalize or the extraction is
  rejected.
* **scored** -- camelCase keys, priority 1-10.  Every field has a
  default; only a missing JSON object rejects.

Descriptions are PII-masked before they are sent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import orjson
import structlog
from pydantic import ValidationError

from complaintdesk.errors import (
    ExtractionError,
    ExtractionFailure,
    GenerationFailedError,
    GenerationFailure,
    InputValidationError,
)
from complaintdesk.models.ai import LabelledComplaintFields, ScoredComplaintFields
from complaintdesk.models.enums import Category, MessageType, PriorityLevel
from complaintdesk.services import normalization as norm
from complaintdesk.services.privacy import mask_pii

if TYPE_CHECKING:
    from complaintdesk.services.llm import GeminiClient

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

LABELLED_SYSTEM_PROMPT: Final[str] = (
    "You are an assistant that converts hostel complaint descriptions into JSON. "
    "Return ONLY valid JSON with these keys and no extra text: "
    "category, sub_category, specific_category, block, room_no, priority_level, message_type, "
    "room_type, building_code, sub_block. "
    "Use UPPERCASE for category and message_type. "
    "Allowed category values: CARPENTRY, ELECTRICAL, PLUMBING, RAGGING. "
    "Allowed message_type values: GRIEVANCE, ASSISTANCE, ENQUIRY, FEEDBACK, POSITIVE_FEEDBACK. "
    "Allowed priority_level values: LOW, MEDIUM, HIGH, CRITICAL. "
    "Use null if a field cannot be inferred."
)

SCORED_PROMPT_TEMPLATE: Final[str] = (
    "Return ONLY valid JSON matching this exact schema (no markdown, no explanation, no extra keys):\n"
    "{{\n"
    '  "category": "PLUMBING | ELECTRICAL | RAGGING | CARPENTRY | GENERAL",\n'
    '  "subCategory": "string",\n'
    '  "roomNo": "string",\n'
    '  "block": "string",\n'
    '  "roomType": "Single | Double",\n'
    '  "priorityLevel": 1,\n'
    '  "assignedTeam": "string",\n'
    '  "preferredTimeSlot": "string"\n'
    "}}\n\n"
    "Description:\n{description}"
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class LabelledExtraction:
    category: Category
    message_type: MessageType
    priority_level: PriorityLevel
    sub_category: str | None = None
    specific_category: str | None = None
    block: str | None = None
    sub_block: str | None = None
    room_no: str | None = None
    room_type: str | None = None
    building_code: str | None = None


@dataclass(slots=True, frozen=True)
class ScoredExtraction:
    category: Category
    sub_category: str
    room_no: str
    block: str
    room_type: str
    priority_score: int
    preferred_time_slot: str
    defaulted_fields: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# JSON span extraction
# ---------------------------------------------------------------------------


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in *text*.

    Braces inside JSON string literals are ignored, so fenced replies
    like ```` ```json {...} ``` ```` and trailing chatter both work.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def parse_json_object(reply: str) -> dict[str, Any]:
    """Pull the JSON object out of a model reply, or raise :class:`ExtractionError`."""
    if not reply or not reply.strip():
        raise ExtractionError(ExtractionFailure.EMPTY_RESPONSE, failure=GenerationFailure.EMPTY_RESPONSE)

    span = find_json_object(reply)
    if span is None:
        raise ExtractionError(ExtractionFailure.MALFORMED_RESPONSE, {"reply_length": len(reply)})

    try:
        data = orjson.loads(span)
    except orjson.JSONDecodeError as exc:
        raise ExtractionError(
            ExtractionFailure.JSON_PARSE_FAILED,
            {"reply_length": len(reply), "error": str(exc)},
        ) from exc

    if not isinstance(data, dict):
        raise ExtractionError(ExtractionFailure.JSON_PARSE_FAILED, {"reply_length": len(reply)})
    return data


def _upstream_kind(failure: GenerationFailure) -> ExtractionFailure:
    if failure is GenerationFailure.EMPTY_RESPONSE:
        return ExtractionFailure.EMPTY_RESPONSE
    if failure is GenerationFailure.MALFORMED_RESPONSE:
        return ExtractionFailure.MALFORMED_RESPONSE
    return ExtractionFailure.UPSTREAM_UNAVAILABLE


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class ComplaintExtractor:
    """Turns complaint descriptions into normalized fields via the LLM."""

    def __init__(self, llm: GeminiClient) -> None:
        self._llm = llm

    @staticmethod
    def _masked(description: str) -> str:
        if not description or not description.strip():
            raise InputValidationError(
                "Description is required",
                context={"kind": ExtractionFailure.EMPTY_DESCRIPTION.value},
            )
        return mask_pii(description.strip()) or ""

    async def _call(self, coro: Any) -> str:
        try:
            return await coro
        except GenerationFailedError as exc:
            raise ExtractionError(_upstream_kind(exc.failure), exc.context, failure=exc.failure) from exc

    async def extract_labelled(self, description: str) -> LabelledExtraction:
        masked = self._masked(description)
        reply = await self._call(self._llm.generate_answer(LABELLED_SYSTEM_PROMPT, masked, ""))
        data = parse_json_object(reply)

        try:
            fields = LabelledComplaintFields.model_validate(data)
        except ValidationError as exc:
            raise ExtractionError(ExtractionFailure.JSON_PARSE_FAILED, {"error": str(exc)}) from exc

        category = norm.normalize_labelled_category(fields.category)
        message_type = norm.normalize_message_type(fields.message_type)
        priority = norm.normalize_priority_label(fields.priority_level)

        invalid = [
            name
            for name, result in (
                ("category", category),
                ("message_type", message_type),
                ("priority_level", priority),
            )
            if not result.ok
        ]
        if invalid:
            logger.warning("extraction.required_field_invalid", fields=invalid)
            raise ExtractionError(ExtractionFailure.REQUIRED_FIELD_INVALID, {"fields": invalid})

        logger.info(
            "extraction.labelled",
            category=category.value,
            message_type=message_type.value,
            priority=priority.value,
        )
        return LabelledExtraction(
            category=category.value,  # type: ignore[arg-type]
            message_type=message_type.value,  # type: ignore[arg-type]
            priority_level=priority.value,  # type: ignore[arg-type]
            sub_category=norm.clean_value(fields.sub_category),
            specific_category=norm.clean_value(fields.specific_category),
            block=norm.clean_value(fields.block),
            sub_block=norm.clean_value(fields.sub_block),
            room_no=norm.clean_value(fields.room_no),
            room_type=norm.clean_value(fields.room_type),
            building_code=norm.clean_value(fields.building_code),
        )

    async def extract_scored(self, description: str) -> ScoredExtraction:
        masked = self._masked(description)
        prompt = SCORED_PROMPT_TEMPLATE.format(description=masked)
        reply = await self._call(self._llm.generate(prompt))
        data = parse_json_object(reply)

        try:
            fields = ScoredComplaintFields.model_validate(data)
        except ValidationError as exc:
            raise ExtractionError(ExtractionFailure.JSON_PARSE_FAILED, {"error": str(exc)}) from exc

        results = {
            "category": norm.normalize_scored_category(fields.category),
            "sub_category": norm.normalize_text(fields.sub_category, norm.DEFAULT_SUB_CATEGORY),
            "room_no": norm.normalize_text(fields.room_no, norm.DEFAULT_LOCATION),
            "block": norm.normalize_text(fields.block, norm.DEFAULT_LOCATION),
            "room_type": norm.normalize_room_type(fields.room_type),
            "priority_score": norm.normalize_priority_score(fields.priority_level),
            "preferred_time_slot": norm.normalize_text(fields.preferred_time_slot, norm.DEFAULT_TIME_SLOT),
        }
        defaulted = tuple(name for name, result in results.items() if result.outcome is norm.Outcome.DEFAULTED)

        logger.info(
            "extraction.scored",
            category=results["category"].value,
            priority=results["priority_score"].value,
            defaulted=list(defaulted),
        )
        return ScoredExtraction(
            **{name: result.value for name, result in results.items()},
            defaulted_fields=defaulted,
        )
