"""Persisted records: users, complaints and Q&A history."""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, Field, field_validator

from complaintdesk.models.enums import (
    Category,
    ComplaintSource,
    MessageType,
    PriorityLevel,
    Role,
    Status,
)


class User(BaseModel):
    id: int
    username: str
    full_name: str = ""
    email: str | None = None
    contact_number: str | None = None
    role: Role = Role.STUDENT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.STAFF, Role.ADMIN)


class Complaint(BaseModel):
    """A maintenance or grievance ticket raised by a user.

    Priority is carried in one of two shapes depending on how the
    complaint was created: ``priority_level`` (LOW..CRITICAL) for the
    labelled AI path and ``priority_score`` (1-10) for the scored path.
    Exactly one of them is set on an AI-created complaint.
    """

    id: int | None = None
    category: Category
    message_type: MessageType
    description: str = Field(..., min_length=1)
    raised_by: int
    status: Status = Status.OPEN

    sub_category: str | None = None
    specific_category: str | None = None

    block: str | None = None
    sub_block: str | None = None
    room_no: str | None = None
    room_type: str | None = None
    building_code: str | None = None

    priority_level: PriorityLevel | None = None
    priority_score: int | None = Field(default=None, ge=1, le=10)

    assigned_team: str | None = None
    preferred_time_slot: str | None = None
    availability_date: date | None = None

    image_url: str | None = None
    attachment_path: str | None = None

    source: ComplaintSource = ComplaintSource.AI_GENERATED
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("description must not be blank")
        return value

    @property
    def has_priority(self) -> bool:
        return self.priority_level is not None or self.priority_score is not None


class QaHistoryRecord(BaseModel):
    model_config = {"frozen": True}

    id: int | None = None
    user_id: int
    admin: bool
    question: str
    answer: str
    asked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
