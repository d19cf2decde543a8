"""Complaint access and lifecycle operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from complaintdesk.errors import ForbiddenError, NotFoundError
from complaintdesk.models.complaint import Complaint, User
from complaintdesk.models.enums import Status

if TYPE_CHECKING:
    from complaintdesk.services.repository import ComplaintRepository
    from complaintdesk.services.vector_store import VectorStore

logger = structlog.get_logger(__name__)


class ComplaintService:
    """Read, update and delete complaints on behalf of a caller.

    Students see only what they raised; staff and admins see everything.
    """

    __slots__ = ("_complaints", "_vector_store")

    def __init__(self, complaints: ComplaintRepository, vector_store: VectorStore) -> None:
        self._complaints = complaints
        self._vector_store = vector_store

    async def _require(self, complaint_id: int) -> Complaint:
        complaint = await self._complaints.get(complaint_id)
        if complaint is None:
            raise NotFoundError(
                f"Complaint not found with id: {complaint_id}",
                context={"complaint_id": complaint_id},
            )
        return complaint

    async def get_complaint(self, complaint_id: int, requester: User) -> Complaint:
        complaint = await self._require(complaint_id)
        if not requester.is_staff and complaint.raised_by != requester.id:
            logger.warning(
                "complaints.access_denied",
                complaint_id=complaint_id,
                user_id=requester.id,
            )
            raise ForbiddenError(
                "You can only view your own complaints",
                context={"complaint_id": complaint_id, "user_id": requester.id},
            )
        return complaint

    async def list_for_user(self, requester: User) -> list[Complaint]:
        if requester.is_staff:
            return await self._complaints.find_all()
        return await self._complaints.find_by_owner(requester.id)

    async def update_status(self, complaint_id: int, status: Status) -> Complaint:
        complaint = await self._require(complaint_id)
        updated = await self._complaints.save(complaint.model_copy(update={"status": status}))
        logger.info(
            "complaints.status_updated",
            complaint_id=complaint_id,
            previous=complaint.status.value,
            status=status.value,
        )
        return updated

    async def delete_complaint(self, complaint_id: int) -> None:
        """Remove the record, then drop its vector best-effort."""
        await self._require(complaint_id)
        await self._complaints.delete(complaint_id)
        logger.info("complaints.deleted", complaint_id=complaint_id)

        try:
            removed = await self._vector_store.delete(complaint_id)
        except Exception:
            logger.warning("complaints.vector_delete_failed", complaint_id=complaint_id, exc_info=True)
            return
        if not removed:
            logger.info("complaints.vector_not_removed", complaint_id=complaint_id)
