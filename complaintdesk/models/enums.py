from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    __slots__ = ()

    PLUMBING = "PLUMBING"
    ELECTRICAL = "ELECTRICAL"
    RAGGING = "RAGGING"
    CARPENTRY = "CARPENTRY"
    GENERAL = "GENERAL"


class MessageType(StrEnum):
    __slots__ = ()

    GRIEVANCE = "GRIEVANCE"
    ASSISTANCE = "ASSISTANCE"
    ENQUIRY = "ENQUIRY"
    FEEDBACK = "FEEDBACK"
    POSITIVE_FEEDBACK = "POSITIVE_FEEDBACK"


class PriorityLevel(StrEnum):
    __slots__ = ()

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Status(StrEnum):
    __slots__ = ()

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


class Role(StrEnum):
    __slots__ = ()

    STUDENT = "STUDENT"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class ComplaintSource(StrEnum):
    """How a complaint entered the system."""

    __slots__ = ()

    AI_GENERATED = "AI_GENERATED"
    GRIEVANCE = "GRIEVANCE"
