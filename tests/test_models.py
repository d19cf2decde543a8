"""Tests for persisted models, provider wire models and the error taxonomy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from complaintdesk.errors import (
    ErrorCode,
    ExtractionError,
    ExtractionFailure,
    GenerationFailedError,
    GenerationFailure,
    NotFoundError,
)
from complaintdesk.models.ai import ChromaQueryResponse, GenerateContentResponse, ScoredComplaintFields
from complaintdesk.models.complaint import Complaint, QaHistoryRecord, User
from complaintdesk.models.enums import Category, MessageType, Role


class TestComplaint:
    def test_defaults(self) -> None:
        c = Complaint(category=Category.PLUMBING, message_type=MessageType.GRIEVANCE, description="x", raised_by=1)
        assert c.status == "OPEN"
        assert c.created_at.tzinfo is not None
        assert c.has_priority is False

    @pytest.mark.parametrize("description", ["", "   "])
    def test_blank_description_rejected(self, description: str) -> None:
        with pytest.raises(ValidationError):
            Complaint(category=Category.PLUMBING, message_type=MessageType.GRIEVANCE, description=description, raised_by=1)

    def test_priority_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Complaint(
                category=Category.PLUMBING,
                message_type=MessageType.GRIEVANCE,
                description="x",
                raised_by=1,
                priority_score=11,
            )

    def test_history_record_is_immutable(self) -> None:
        record = QaHistoryRecord(user_id=1, admin=False, question="q", answer="a")
        with pytest.raises(ValidationError):
            record.answer = "changed"  # type: ignore[misc]


class TestUser:
    def test_roles(self) -> None:
        assert User(id=1, username="a").is_staff is False
        assert User(id=1, username="a", role=Role.STAFF).is_staff is True
        assert User(id=1, username="a", role=Role.ADMIN).is_admin is True


class TestWireModels:
    def test_generate_content_text(self) -> None:
        parsed = GenerateContentResponse.model_validate(
            {"candidates": [{"content": {"parts": [{"text": "first"}, {"text": "second"}]}}]}
        )
        assert parsed.text == "first"

    def test_generate_content_requires_candidates(self) -> None:
        with pytest.raises(ValidationError):
            GenerateContentResponse.model_validate({})

    def test_scored_fields_aliases(self) -> None:
        fields = ScoredComplaintFields.model_validate({"subCategory": "Tap", "roomNo": 12, "priorityLevel": 7.0})
        assert fields.sub_category == "Tap"
        assert fields.room_no == "12"
        assert fields.priority_level == 7

    def test_chroma_query_empty(self) -> None:
        parsed = ChromaQueryResponse.model_validate({"metadatas": None, "distances": None})
        assert parsed.first_metadatas() == []
        assert parsed.first_distances() == []


class TestErrors:
    def test_to_dict(self) -> None:
        error = NotFoundError("Complaint not found with id: 4", context={"complaint_id": 4})
        assert error.to_dict() == {"error": {"code": "NOT_FOUND", "message": "Complaint not found with id: 4"}}

    def test_generation_failure_is_opaque(self) -> None:
        error = GenerationFailedError(GenerationFailure.INVALID_CREDENTIALS, context={"status": 403})
        assert error.message == "Complaint generation failed"
        assert error.error_code == ErrorCode.GENERATION_FAILED
        assert error.context == {"status": 403, "failure": "invalid_credentials"}

    def test_extraction_error_carries_kind(self) -> None:
        error = ExtractionError(ExtractionFailure.JSON_PARSE_FAILED)
        assert isinstance(error, GenerationFailedError)
        assert error.kind == ExtractionFailure.JSON_PARSE_FAILED
        assert error.context["kind"] == "json_parse_failed"
        assert error.failure == GenerationFailure.MALFORMED_RESPONSE
