from complaintdesk.models.ai import (
    EmbedContentResponse,
    GenerateContentResponse,
    LabelledComplaintFields,
    ScoredComplaintFields,
)
from complaintdesk.models.complaint import Complaint, QaHistoryRecord, User
from complaintdesk.models.enums import (
    Category,
    ComplaintSource,
    MessageType,
    PriorityLevel,
    Role,
    Status,
)
from complaintdesk.models.response import (
    ComplaintGenerationResult,
    DailyQuestionCount,
    DashboardStats,
    QaAnalytics,
    SyncReport,
)

__all__ = [
    "Category",
    "Complaint",
    "ComplaintGenerationResult",
    "ComplaintSource",
    "DailyQuestionCount",
    "DashboardStats",
    "EmbedContentResponse",
    "GenerateContentResponse",
    "LabelledComplaintFields",
    "MessageType",
    "PriorityLevel",
    "QaAnalytics",
    "QaHistoryRecord",
    "Role",
    "ScoredComplaintFields",
    "Status",
    "SyncReport",
    "User",
]
