"""Complaint classification orchestrator.

Turns a free-text description into a persisted, indexed complaint:

1. validate the description and resolve the raiser;
2. structured extraction (includes field normalization);
3. embed the masked description;
4. advisory duplicate check against the vector index;
5. persist the complaint with its derived team;
6. best-effort upsert into the vector index;
7. return the complaint with the duplicate advisory.

Steps 1-2 are terminal on failure and persist nothing.  Steps 3, 4 and 6
never fail the request.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from complaintdesk.errors import InputValidationError, NotFoundError
from complaintdesk.models.complaint import Complaint, User
from complaintdesk.models.enums import ComplaintSource, MessageType, Status
from complaintdesk.models.response import (
    GENERATED_DUPLICATE_MESSAGE,
    GENERATED_MESSAGE,
    ComplaintGenerationResult,
)
from complaintdesk.services.normalization import resolve_assigned_team
from complaintdesk.services.privacy import mask_pii

if TYPE_CHECKING:
    from complaintdesk.services.embedding import EmbeddingClient
    from complaintdesk.services.extraction import ComplaintExtractor
    from complaintdesk.services.repository import ComplaintRepository, UserRepository
    from complaintdesk.services.vector_store import VectorStore

logger = structlog.get_logger(__name__)


class ComplaintClassifier:
    """Orchestrates AI-assisted complaint creation.

    Parameters
    ----------
    extractor:
        Structured-extraction client.
    embeddings:
        Embedding client; falls back locally and never raises for
        non-empty text.
    vector_store:
        Complaint embedding index.  Failures are logged and ignored.
    complaints, users:
        Persistence collaborators.
    """

    __slots__ = ("_complaints", "_embeddings", "_extractor", "_users", "_vector_store")

    def __init__(
        self,
        extractor: ComplaintExtractor,
        embeddings: EmbeddingClient,
        vector_store: VectorStore,
        complaints: ComplaintRepository,
        users: UserRepository,
    ) -> None:
        self._extractor = extractor
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._complaints = complaints
        self._users = users

    # -- shared steps -------------------------------------------------------

    async def _resolve_user(self, description: str, user_id: int) -> User:
        if not description or not description.strip():
            raise InputValidationError("Description cannot be empty", context={"user_id": user_id})
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}", context={"user_id": user_id})
        return user

    async def _check_duplicate(self, vector: list[float], log: structlog.stdlib.BoundLogger) -> bool:
        try:
            duplicate = await self._vector_store.has_duplicate(vector)
        except Exception:
            log.warning("classification.duplicate_check_failed", exc_info=True)
            return False
        if duplicate:
            log.warning("classification.duplicate_detected")
        return duplicate

    async def _index(
        self,
        complaint: Complaint,
        vector: list[float],
        document: str,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        metadata = {
            "category": complaint.category.value,
            "room_no": complaint.room_no,
            "user_id": complaint.raised_by,
        }
        try:
            indexed = await self._vector_store.upsert(complaint.id, vector, metadata, document)  # type: ignore[arg-type]
        except Exception:
            log.warning("classification.index_failed", complaint_id=complaint.id, exc_info=True)
            return
        if not indexed:
            log.warning("classification.index_failed", complaint_id=complaint.id)

    async def _finish(
        self,
        complaint: Complaint,
        masked: str,
        log: structlog.stdlib.BoundLogger,
        start: float,
    ) -> ComplaintGenerationResult:
        vector = await self._embeddings.embed_strict(masked)
        log.info("classification.embedded", dimensions=len(vector))

        duplicate = await self._check_duplicate(vector, log)

        saved = await self._complaints.save(complaint)
        log = log.bind(complaint_id=saved.id)
        log.info("classification.persisted", category=saved.category.value, team=saved.assigned_team)

        await self._index(saved, vector, masked, log)

        log.info(
            "classification.completed",
            duplicate=duplicate,
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return ComplaintGenerationResult(
            complaint=saved,
            duplicate=duplicate,
            message=GENERATED_DUPLICATE_MESSAGE if duplicate else GENERATED_MESSAGE,
        )

    # -- public API ---------------------------------------------------------

    async def generate_complaint(self, description: str, user_id: int) -> ComplaintGenerationResult:
        """Labelled path: LOW..CRITICAL priority, any required miss rejects."""
        start = time.perf_counter()
        log = logger.bind(user_id=user_id, path="labelled")
        user = await self._resolve_user(description, user_id)
        log.info("classification.started", description_length=len(description))

        fields = await self._extractor.extract_labelled(description)

        complaint = Complaint(
            category=fields.category,
            message_type=fields.message_type,
            priority_level=fields.priority_level,
            description=description.strip(),
            raised_by=user.id,
            status=Status.OPEN,
            sub_category=fields.sub_category,
            specific_category=fields.specific_category,
            block=fields.block,
            sub_block=fields.sub_block,
            room_no=fields.room_no,
            room_type=fields.room_type,
            building_code=fields.building_code,
            assigned_team=resolve_assigned_team(fields.category),
            source=ComplaintSource.AI_GENERATED,
        )
        masked = mask_pii(complaint.description) or complaint.description
        return await self._finish(complaint, masked, log, start)

    async def generate_scored_complaint(self, description: str, user_id: int) -> ComplaintGenerationResult:
        """Scored path: 1-10 priority, every field defaulted when unusable."""
        start = time.perf_counter()
        log = logger.bind(user_id=user_id, path="scored")
        user = await self._resolve_user(description, user_id)
        log.info("classification.started", description_length=len(description))

        fields = await self._extractor.extract_scored(description)
        if fields.defaulted_fields:
            log.info("classification.fields_defaulted", fields=list(fields.defaulted_fields))

        complaint = Complaint(
            category=fields.category,
            message_type=MessageType.GRIEVANCE,
            priority_score=fields.priority_score,
            description=description.strip(),
            raised_by=user.id,
            status=Status.OPEN,
            sub_category=fields.sub_category,
            block=fields.block,
            building_code=fields.block,
            room_no=fields.room_no,
            room_type=fields.room_type,
            assigned_team=resolve_assigned_team(fields.category),
            preferred_time_slot=fields.preferred_time_slot,
            availability_date=datetime.now(UTC).date(),
            source=ComplaintSource.GRIEVANCE,
        )
        masked = mask_pii(complaint.description) or complaint.description
        return await self._finish(complaint, masked, log, start)
