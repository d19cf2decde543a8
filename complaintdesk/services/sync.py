"""One-shot startup reconciliation of the vector index."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from complaintdesk.models.response import SyncReport
from complaintdesk.services.privacy import mask_pii

if TYPE_CHECKING:
    from complaintdesk.services.embedding import EmbeddingClient
    from complaintdesk.services.repository import ComplaintRepository
    from complaintdesk.services.vector_store import VectorStore

logger = structlog.get_logger(__name__)


async def sync_vector_index(
    complaints: ComplaintRepository,
    embeddings: EmbeddingClient,
    vector_store: VectorStore,
) -> SyncReport:
    """Re-embed and upsert every complaint, one at a time.

    A failed item is logged and counted; the run always completes.
    """
    if not await vector_store.ensure_collection():
        logger.warning("sync.collection_unavailable")

    records = await complaints.find_all()
    report = SyncReport(total=len(records))

    for complaint in records:
        document = mask_pii(complaint.description) or complaint.description
        try:
            vector = await embeddings.embed(document)
            ok = await vector_store.upsert(
                complaint.id,  # type: ignore[arg-type]
                vector,
                {
                    "category": complaint.category.value,
                    "room_no": complaint.room_no,
                    "user_id": complaint.raised_by,
                },
                document,
            )
        except Exception:
            logger.warning("sync.item_failed", complaint_id=complaint.id, exc_info=True)
            ok = False

        if ok:
            report.indexed += 1
        else:
            report.failed += 1

    logger.info("sync.completed", total=report.total, indexed=report.indexed, failed=report.failed)
    return report
