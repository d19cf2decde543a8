"""Service wiring for the complaint desk.

Builds every client and service from :class:`config.settings.Settings`,
runs the startup checks and closes the HTTP clients on shutdown.  An HTTP
layer only needs to enter :func:`lifespan` and read the container.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator

import httpx
import structlog

from complaintdesk.services.analytics import DashboardService, QaAnalyticsService
from complaintdesk.services.classification import ComplaintClassifier
from complaintdesk.services.complaints import ComplaintService
from complaintdesk.services.embedding import EmbeddingClient
from complaintdesk.services.extraction import ComplaintExtractor
from complaintdesk.services.llm import GeminiClient
from complaintdesk.services.qa import ComplaintQaService
from complaintdesk.services.repository import (
    InMemoryComplaintRepository,
    InMemoryQaHistoryRepository,
    InMemoryUserRepository,
)
from complaintdesk.services.sync import sync_vector_index
from complaintdesk.services.vector_store import (
    ChromaVectorStore,
    InMemoryVectorStore,
    build_vector_store,
)

if TYPE_CHECKING:
    from config.settings import Settings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def configure_logging(settings: Settings) -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(settings.log_level),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ServiceContainer:
    settings: Settings
    llm: GeminiClient
    embeddings: EmbeddingClient
    vector_store: ChromaVectorStore | InMemoryVectorStore
    complaints_repo: InMemoryComplaintRepository
    users_repo: InMemoryUserRepository
    history_repo: InMemoryQaHistoryRepository
    classifier: ComplaintClassifier
    qa: ComplaintQaService
    complaints: ComplaintService
    analytics: QaAnalyticsService
    dashboard: DashboardService

    async def close(self) -> None:
        await self.llm.close()
        await self.embeddings.close()
        await self.vector_store.close()


def build_services(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ServiceContainer:
    """Construct every service; no network I/O happens here."""
    llm = GeminiClient.from_settings(settings, transport=transport)
    embeddings = EmbeddingClient.from_settings(settings, transport=transport)
    vector_store = build_vector_store(settings, transport=transport)

    complaints_repo = InMemoryComplaintRepository()
    users_repo = InMemoryUserRepository()
    history_repo = InMemoryQaHistoryRepository()

    return ServiceContainer(
        settings=settings,
        llm=llm,
        embeddings=embeddings,
        vector_store=vector_store,
        complaints_repo=complaints_repo,
        users_repo=users_repo,
        history_repo=history_repo,
        classifier=ComplaintClassifier(
            ComplaintExtractor(llm),
            embeddings,
            vector_store,
            complaints_repo,
            users_repo,
        ),
        qa=ComplaintQaService(llm, complaints_repo, users_repo, history_repo),
        complaints=ComplaintService(complaints_repo, vector_store),
        analytics=QaAnalyticsService(history_repo),
        dashboard=DashboardService(complaints_repo),
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def startup(container: ServiceContainer) -> None:
    """Validate configuration, then run the optional startup tasks.

    1. Fail fast on a malformed Gemini key / URL.
    2. Round-trip a trivial prompt when the health check is enabled.
    3. Re-index every complaint when startup sync is enabled.
    """
    settings = container.settings
    logger.info(
        "app.startup",
        env=settings.env,
        vector_backend=settings.vector_backend,
        chroma_enabled=settings.chroma_enabled,
    )

    settings.validate_generation()

    if settings.gemini_health_check_enabled:
        await container.llm.health_check()

    if settings.chroma_sync_on_startup:
        await sync_vector_index(container.complaints_repo, container.embeddings, container.vector_store)


@asynccontextmanager
async def lifespan(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[ServiceContainer]:
    configure_logging(settings)
    container = build_services(settings, transport=transport)
    try:
        await startup(container)
        yield container
    finally:
        await container.close()
        logger.info("app.shutdown")
