from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from complaintdesk.models.complaint import Complaint

GENERATED_MESSAGE = "Complaint generated successfully"
GENERATED_DUPLICATE_MESSAGE = "Complaint generated successfully (similar complaint exists)"


class ComplaintGenerationResult(BaseModel):
    """Returned to the caller after an AI-assisted complaint is created."""

    complaint: Complaint
    duplicate: bool = False
    message: str = GENERATED_MESSAGE


class QaAnalytics(BaseModel):
    total_questions: int = 0
    total_admin_questions: int = 0
    total_user_questions: int = 0
    success_count: int = 0
    error_count: int = 0
    first_question_date: date | None = None
    last_question_date: date | None = None


class DailyQuestionCount(BaseModel):
    day: date
    total: int = 0
    admin: int = 0
    user: int = 0


class DashboardStats(BaseModel):
    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)


class SyncReport(BaseModel):
    total: int = 0
    indexed: int = 0
    failed: int = 0
