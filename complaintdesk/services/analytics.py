"""Q&A usage analytics and complaint dashboard statistics."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Final

import structlog

from complaintdesk.models.complaint import QaHistoryRecord
from complaintdesk.models.enums import Status
from complaintdesk.models.response import DailyQuestionCount, DashboardStats, QaAnalytics

if TYPE_CHECKING:
    from complaintdesk.services.repository import ComplaintRepository, QaHistoryRepository

logger = structlog.get_logger(__name__)

DEFAULT_DAYS: Final[int] = 7
USER_HISTORY_LIMIT: Final[int] = 20

# Answer texts that mean the model call itself failed.
_ERROR_PREFIXES: Final[tuple[str, ...]] = ("error calling llm api",)
_ERROR_FRAGMENTS: Final[tuple[str, ...]] = (
    "no response from llm api",
    "unexpected response format from llm api",
    "llm configuration is missing",
)


def is_error_answer(answer: str | None) -> bool:
    if answer is None:
        return False
    a = answer.lower()
    return a.startswith(_ERROR_PREFIXES) or any(fragment in a for fragment in _ERROR_FRAGMENTS)


def summarize(records: list[QaHistoryRecord]) -> QaAnalytics:
    if not records:
        return QaAnalytics()
    total = len(records)
    admin = sum(1 for r in records if r.admin)
    errors = sum(1 for r in records if is_error_answer(r.answer))
    asked = [r.asked_at for r in records]
    return QaAnalytics(
        total_questions=total,
        total_admin_questions=admin,
        total_user_questions=total - admin,
        success_count=total - errors,
        error_count=errors,
        first_question_date=min(asked).date(),
        last_question_date=max(asked).date(),
    )


def daily_buckets(records: list[QaHistoryRecord], days: int, today: date) -> list[DailyQuestionCount]:
    """One bucket per day for the last *days* days, oldest first, *today* included."""
    if days <= 0:
        days = DEFAULT_DAYS
    start = today - timedelta(days=days - 1)

    by_day: dict[date, list[QaHistoryRecord]] = defaultdict(list)
    for record in records:
        day = record.asked_at.date()
        if start <= day <= today:
            by_day[day].append(record)

    buckets = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        items = by_day.get(day, [])
        admin = sum(1 for r in items if r.admin)
        buckets.append(DailyQuestionCount(day=day, total=len(items), admin=admin, user=len(items) - admin))
    return buckets


class QaAnalyticsService:
    """Aggregates over the Q&A history."""

    __slots__ = ("_history",)

    def __init__(self, history: QaHistoryRepository) -> None:
        self._history = history

    async def history_for_user(self, user_id: int) -> list[QaHistoryRecord]:
        """The user's latest questions, newest first."""
        return await self._history.find_recent_for_user(user_id, USER_HISTORY_LIMIT)

    async def global_analytics(self) -> QaAnalytics:
        return summarize(await self._history.find_all())

    async def user_analytics(self, user_id: int) -> QaAnalytics:
        return summarize(await self.history_for_user(user_id))

    async def global_daily_counts(self, days: int = DEFAULT_DAYS, today: date | None = None) -> list[DailyQuestionCount]:
        records = await self._history.find_all()
        return daily_buckets(records, days, today or datetime.now(UTC).date())

    async def user_daily_counts(
        self,
        user_id: int,
        days: int = DEFAULT_DAYS,
        today: date | None = None,
    ) -> list[DailyQuestionCount]:
        records = await self.history_for_user(user_id)
        return daily_buckets(records, days, today or datetime.now(UTC).date())


class DashboardService:
    __slots__ = ("_complaints",)

    def __init__(self, complaints: ComplaintRepository) -> None:
        self._complaints = complaints

    async def stats(self) -> DashboardStats:
        by_status = await self._complaints.count_by_field("status")
        by_category = await self._complaints.count_by_field("category")
        stats = DashboardStats(
            total=sum(by_status.values()),
            open=by_status.get(Status.OPEN.value, 0),
            in_progress=by_status.get(Status.IN_PROGRESS.value, 0),
            resolved=by_status.get(Status.RESOLVED.value, 0),
            by_category=by_category,
        )
        logger.debug("dashboard.stats", total=stats.total)
        return stats
