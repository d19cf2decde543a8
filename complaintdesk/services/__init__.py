"""Complaint desk service layer -- extraction, embeddings, vector search and Q&A."""

from __future__ import annotations

from complaintdesk.services.analytics import DashboardService, QaAnalyticsService
from complaintdesk.services.classification import ComplaintClassifier
from complaintdesk.services.complaints import ComplaintService
from complaintdesk.services.embedding import EmbeddingClient, fallback_embedding
from complaintdesk.services.extraction import ComplaintExtractor
from complaintdesk.services.llm import GeminiClient
from complaintdesk.services.privacy import mask_pii
from complaintdesk.services.qa import ComplaintQaService, filter_complaints_by_question
from complaintdesk.services.sync import sync_vector_index
from complaintdesk.services.vector_store import (
    ChromaVectorStore,
    InMemoryVectorStore,
    QueryCandidate,
    VectorStore,
)

__all__ = [
    "ChromaVectorStore",
    "ComplaintClassifier",
    "ComplaintExtractor",
    "ComplaintQaService",
    "ComplaintService",
    "DashboardService",
    "EmbeddingClient",
    "GeminiClient",
    "InMemoryVectorStore",
    "QaAnalyticsService",
    "QueryCandidate",
    "VectorStore",
    "fallback_embedding",
    "filter_complaints_by_question",
    "mask_pii",
    "sync_vector_index",
]
