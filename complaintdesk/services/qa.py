"""Retrieval-augmented Q&A over persisted complaints.

Retrieval is keyword based: the question is scanned for category and
status keywords, the candidate complaints are filtered, and a masked
context block is handed to the generative endpoint together with a
role-specific system prompt.  Every generated answer is recorded in the
Q&A history.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import structlog

from complaintdesk.errors import ForbiddenError, NotFoundError
from complaintdesk.models.complaint import Complaint, QaHistoryRecord
from complaintdesk.models.enums import Category, Status
from complaintdesk.services.privacy import mask_pii

if TYPE_CHECKING:
    from complaintdesk.services.llm import GeminiClient
    from complaintdesk.services.repository import (
        ComplaintRepository,
        QaHistoryRepository,
        UserRepository,
    )

logger = structlog.get_logger(__name__)

PERSONAL_CONTEXT_LIMIT: Final[int] = 20
ADMIN_CONTEXT_LIMIT: Final[int] = 50

NO_SYSTEM_COMPLAINTS: Final[str] = "No complaints found in the system."

USER_SYSTEM_PROMPT: Final[str] = (
    "You are a helpful hostel complaint management assistant. "
    "Answer questions about the client's complaints using ONLY the provided context. "
    "If the answer is not in the context, say you don't know. "
    "Always format your answer EXACTLY in three sections with these headings: "
    "'Summary', 'Details', and 'Suggestions'. "
    "When the user asks 'how many', 'count', 'number of' or to 'show/list all' complaints "
    "for a category (for example plumbing / plumbering), in the Summary give the exact count, and in Details: "
    "list EACH matching complaint on its own line in this format: "
    "'- Complaint #<id> | Category: <category> | Status: <status> | Date: <date or N/A> | <short description>'. "
    "For other questions, still use the same three sections: "
    "Summary: 1-2 sentence overview; Details: bullet points with ids, categories, statuses, dates; "
    "Suggestions: bullet points with practical advice for the client (or 'None' if not applicable)."
)

ADMIN_SYSTEM_PROMPT: Final[str] = (
    "You are a helpful hostel complaint management assistant for admins. "
    "Answer questions about all complaints in the system using ONLY the provided context. "
    "If the answer is not in the context, say you don't know. "
    "Always format your answer EXACTLY in three sections with these headings: "
    "'Summary', 'Details', and 'Recommendations'. "
    "When the admin asks 'how many', 'count', 'number of' or to 'show/list all' complaints "
    "for a category (for example plumbing / plumbering), in the Summary give the exact count, and in Details: "
    "list EACH matching complaint on its own line in this format: "
    "'- Complaint #<id> | Raised By: <non-PII user id like USER-123 or Unknown> | Category: <category> "
    "| Status: <status> | Date: <date or N/A> | <short description>'. "
    "For other questions, still use the same three sections: "
    "Summary: brief overview; Details: bullet points with important numbers, categories, trends, and risks; "
    "Recommendations: 1-3 concrete next actions for the admin."
)


# ---------------------------------------------------------------------------
# Keyword filtering
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class _KeywordRule:
    keywords: tuple[str, ...]
    value: str


_CATEGORY_RULES: Final[tuple[_KeywordRule, ...]] = (
    _KeywordRule(("plumbing", "plumber"), Category.PLUMBING.value),
    _KeywordRule(("electrical", "electrician"), Category.ELECTRICAL.value),
    _KeywordRule(("carpentry", "carpenter"), Category.CARPENTRY.value),
    _KeywordRule(("ragging",), Category.RAGGING.value),
)

_STATUS_RULES: Final[tuple[_KeywordRule, ...]] = (
    _KeywordRule(("open",), Status.OPEN.value),
    _KeywordRule(("resolved", "closed", "solved"), Status.RESOLVED.value),
    _KeywordRule(("in progress", "progress"), Status.IN_PROGRESS.value),
)


def _wanted(question: str, rules: tuple[_KeywordRule, ...]) -> set[str]:
    return {rule.value for rule in rules if any(word in question for word in rule.keywords)}


def filter_complaints_by_question(complaints: list[Complaint], question: str | None) -> list[Complaint]:
    """Keep complaints matching the category and status keywords in *question*.

    A group (category or status) with no keyword present does not filter.
    Groups are ANDed; keywords within a group are ORed.
    """
    if not question:
        return list(complaints)
    q = question.lower()
    categories = _wanted(q, _CATEGORY_RULES)
    statuses = _wanted(q, _STATUS_RULES)

    return [
        c
        for c in complaints
        if (not categories or c.category.value in categories) and (not statuses or c.status.value in statuses)
    ]


# ---------------------------------------------------------------------------
# Context building
# ---------------------------------------------------------------------------


def _complaint_block(complaint: Complaint, *, include_raiser: bool) -> str:
    lines = [f"Complaint #{complaint.id}"]
    if include_raiser:
        raiser = f"USER-{complaint.raised_by}" if complaint.raised_by is not None else "Unknown"
        lines.append(f"Raised By: {raiser}")
    lines.append(f"Category: {complaint.category.value}")
    lines.append(f"Status: {complaint.status.value}")
    if complaint.availability_date is not None:
        lines.append(f"Date: {complaint.availability_date.isoformat()}")
    if complaint.description:
        lines.append(f"Description: {mask_pii(complaint.description)}")
    lines.append("---")
    return "\n".join(lines) + "\n"


def build_user_context(complaints: list[Complaint], limit: int = PERSONAL_CONTEXT_LIMIT) -> str:
    return "\n".join(_complaint_block(c, include_raiser=False) for c in complaints[:limit])


def build_admin_context(complaints: list[Complaint], limit: int = ADMIN_CONTEXT_LIMIT) -> str:
    """Admin context carries ``USER-<id>`` references, never names or emails."""
    return "\n".join(_complaint_block(c, include_raiser=True) for c in complaints[:limit])


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ComplaintQaService:
    """Answers natural-language questions about complaints."""

    __slots__ = ("_complaints", "_history", "_llm", "_users")

    def __init__(
        self,
        llm: GeminiClient,
        complaints: ComplaintRepository,
        users: UserRepository,
        history: QaHistoryRepository,
    ) -> None:
        self._llm = llm
        self._complaints = complaints
        self._users = users
        self._history = history

    async def _save_history(self, user_id: int, admin: bool, question: str, answer: str) -> None:
        record = await self._history.add(
            QaHistoryRecord(user_id=user_id, admin=admin, question=question, answer=answer)
        )
        logger.info("qa.history_saved", record_id=record.id, user_id=user_id, admin=admin)

    async def answer_question(self, question: str, user_id: int) -> str:
        """Answer over the complaints raised by *user_id*."""
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"Client not found with id: {user_id}", context={"user_id": user_id})

        candidates = await self._complaints.find_by_owner(user_id)
        if not candidates:
            logger.info("qa.no_complaints", user_id=user_id, scope="personal")
            return f"No complaints found for client {user.full_name or user.username}."

        matched = filter_complaints_by_question(candidates, question)
        context = build_user_context(matched)
        logger.info(
            "qa.context_built",
            scope="personal",
            user_id=user_id,
            candidates=len(candidates),
            matched=len(matched),
        )

        answer = await self._llm.generate_answer(USER_SYSTEM_PROMPT, question, context)
        await self._save_history(user_id, False, question, answer)
        return answer

    async def answer_admin_question(self, question: str, admin_user_id: int | None = None) -> str:
        """Answer over every complaint.

        When *admin_user_id* is given the caller must be an admin, and the
        answer is kept in the Q&A history under that id.
        """
        if admin_user_id is not None:
            admin = await self._users.get(admin_user_id)
            if admin is None:
                raise NotFoundError(f"User not found with id: {admin_user_id}", context={"user_id": admin_user_id})
            if not admin.is_admin:
                raise ForbiddenError("Admin access required", context={"user_id": admin_user_id})

        candidates = await self._complaints.find_all()
        if not candidates:
            logger.info("qa.no_complaints", scope="admin")
            return NO_SYSTEM_COMPLAINTS

        matched = filter_complaints_by_question(candidates, question)
        context = build_admin_context(matched)
        logger.info("qa.context_built", scope="admin", candidates=len(candidates), matched=len(matched))

        answer = await self._llm.generate_answer(ADMIN_SYSTEM_PROMPT, question, context)
        if admin_user_id is not None:
            await self._save_history(admin_user_id, True, question, answer)
        return answer
