"""Vector index for complaint embeddings.

Two interchangeable backends implement :class:`VectorStore`:

* :class:`ChromaVectorStore` -- an external Chroma server over its REST API.
* :class:`InMemoryVectorStore` -- brute-force cosine similarity over a numpy
  matrix, for local development and tests.

Neither backend ever raises to its caller: indexing is a disposable
projection of the complaint table and its loss must never block complaint
creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Protocol, runtime_checkable

import httpx
import numpy as np
import orjson
import structlog
from pydantic import ValidationError

from complaintdesk.models.ai import ChromaCollection, ChromaQueryResponse
from complaintdesk.services.privacy import truncate_body

if TYPE_CHECKING:
    from config.settings import Settings

logger = structlog.get_logger(__name__)

_API_PREFIX: Final[str] = "/api/v1"
_DEFAULT_THRESHOLD: Final[float] = 0.90


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class QueryCandidate:
    """A nearest-neighbour hit: the stored complaint's category and distance."""

    category: str
    distance: float | None


@runtime_checkable
class VectorStore(Protocol):
    """Async complaint-embedding index."""

    async def ensure_collection(self) -> bool: ...

    async def upsert(
        self,
        complaint_id: int,
        vector: list[float],
        metadata: dict[str, Any],
        document: str,
    ) -> bool: ...

    async def query(self, vector: list[float], k: int = 5) -> list[QueryCandidate]: ...

    async def has_duplicate(self, vector: list[float]) -> bool: ...

    async def delete(self, complaint_id: int) -> bool: ...


def is_near_duplicate(candidates: list[QueryCandidate], threshold: float | None) -> bool:
    """Decide whether the nearest neighbour counts as a duplicate.

    Distances are cosine distances, so similarity is ``1 - distance``.  A
    ``None`` threshold flags any returned neighbour.
    """
    if not candidates:
        return False
    if threshold is None:
        return True
    nearest = candidates[0].distance
    if nearest is None:
        return False
    return (1.0 - nearest) >= threshold


def _clean_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    # Chroma rejects null metadata values.
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in metadata.items()
        if value is not None
    }


# ---------------------------------------------------------------------------
# Chroma backend
# ---------------------------------------------------------------------------


class ChromaVectorStore:
    """Chroma REST client.

    Parameters
    ----------
    base_url:
        Chroma server URL, e.g. ``http://localhost:8000``.  Empty disables
        the store: every call becomes a logged no-op.
    collection:
        Collection name; created on first use with cosine distance.
    duplicate_threshold:
        Minimum similarity for :meth:`has_duplicate`; ``None`` flags any
        neighbour.
    """

    def __init__(
        self,
        base_url: str,
        collection: str = "hostel_complaints_embeddings",
        *,
        duplicate_threshold: float | None = _DEFAULT_THRESHOLD,
        duplicate_k: int = 1,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.strip().rstrip("/")
        self._collection = collection
        self._collection_id: str | None = None
        self._duplicate_threshold = duplicate_threshold
        self._duplicate_k = duplicate_k
        self._client = httpx.AsyncClient(
            base_url=self._base_url + _API_PREFIX if self._base_url else "",
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ChromaVectorStore:
        return cls(
            settings.chroma_url,
            settings.chroma_collection,
            duplicate_threshold=settings.duplicate_similarity_threshold,
            duplicate_k=settings.duplicate_query_k,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    # -- internal helpers --------------------------------------------------

    async def _post(self, path: str, body: dict[str, Any]) -> Any | None:
        """POST JSON to Chroma; ``None`` on any failure."""
        try:
            response = await self._client.post(path, content=orjson.dumps(body))
        except httpx.HTTPError:
            logger.warning("vector_store.request_failed", path=path, exc_info=True)
            return None

        if not response.is_success:
            logger.warning(
                "vector_store.http_error",
                path=path,
                status=response.status_code,
                body=truncate_body(response.text),
            )
            return None

        if not response.content:
            return {}
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError:
            logger.warning("vector_store.malformed_response", path=path)
            return None

    def _collection_path(self, action: str) -> str:
        return f"/collections/{self._collection_id or self._collection}/{action}"

    # -- VectorStore interface ---------------------------------------------

    async def ensure_collection(self) -> bool:
        """Create the collection if missing.  Idempotent; cached after success."""
        if not self.configured:
            return False
        if self._collection_id is not None:
            return True

        data = await self._post(
            "/collections",
            {
                "name": self._collection,
                "metadata": {"hnsw:space": "cosine"},
                "get_or_create": True,
            },
        )
        if data is None:
            logger.warning("vector_store.ensure_collection_failed", collection=self._collection)
            return False

        try:
            self._collection_id = ChromaCollection.model_validate(data).id
        except ValidationError:
            # Older servers answer without a body; address the collection by name.
            self._collection_id = self._collection
        logger.info("vector_store.collection_ready", collection=self._collection)
        return True

    async def upsert(
        self,
        complaint_id: int,
        vector: list[float],
        metadata: dict[str, Any],
        document: str,
    ) -> bool:
        if not self.configured or not vector:
            return False
        if not await self.ensure_collection():
            logger.warning("vector_store.upsert_failed", complaint_id=complaint_id, reason="no_collection")
            return False

        data = await self._post(
            self._collection_path("upsert"),
            {
                "ids": [str(complaint_id)],
                "embeddings": [vector],
                "metadatas": [_clean_metadata(metadata)],
                "documents": [document],
            },
        )
        if data is None:
            logger.warning("vector_store.upsert_failed", complaint_id=complaint_id)
            return False
        logger.info("vector_store.upserted", complaint_id=complaint_id)
        return True

    async def query(self, vector: list[float], k: int = 5) -> list[QueryCandidate]:
        """Nearest neighbours' categories and distances, nearest first."""
        if not self.configured or not vector:
            return []
        if not await self.ensure_collection():
            return []

        data = await self._post(
            self._collection_path("query"),
            {
                "query_embeddings": [vector],
                "n_results": max(1, k),
                "include": ["metadatas", "distances"],
            },
        )
        if data is None:
            return []

        try:
            parsed = ChromaQueryResponse.model_validate(data)
        except ValidationError:
            logger.warning("vector_store.malformed_query_response")
            return []

        metadatas = parsed.first_metadatas()
        distances = parsed.first_distances()
        candidates: list[QueryCandidate] = []
        for i, meta in enumerate(metadatas):
            category = (meta or {}).get("category")
            if category is None:
                continue
            distance = distances[i] if i < len(distances) else None
            candidates.append(QueryCandidate(category=str(category).upper(), distance=distance))
        return candidates

    async def has_duplicate(self, vector: list[float]) -> bool:
        try:
            candidates = await self.query(vector, self._duplicate_k)
        except Exception:
            logger.warning("vector_store.duplicate_check_failed", exc_info=True)
            return False
        return is_near_duplicate(candidates, self._duplicate_threshold)

    async def delete(self, complaint_id: int) -> bool:
        if not self.configured:
            return False
        if not await self.ensure_collection():
            return False
        data = await self._post(self._collection_path("delete"), {"ids": [str(complaint_id)]})
        if data is None:
            logger.warning("vector_store.delete_failed", complaint_id=complaint_id)
            return False
        logger.info("vector_store.deleted", complaint_id=complaint_id)
        return True


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryVectorStore:
    """In-process cosine-similarity index backed by NumPy.

    * Vectors are stored as **float32** rows of a dense matrix.
    * ``query()`` normalizes rows once per call, takes a single
      matrix-vector product and selects the top-k with ``np.argpartition``.
    * Vectors whose dimensionality differs from the index are skipped with
      a warning (mixing remote and fallback embeddings).
    """

    __slots__ = (
        "_documents",
        "_duplicate_k",
        "_duplicate_threshold",
        "_embeddings",
        "_ids",
        "_metadatas",
    )

    def __init__(
        self,
        *,
        duplicate_threshold: float | None = _DEFAULT_THRESHOLD,
        duplicate_k: int = 1,
    ) -> None:
        self._embeddings: np.ndarray | None = None
        self._ids: list[str] = []
        self._metadatas: list[dict[str, Any]] = []
        self._documents: list[str] = []
        self._duplicate_threshold = duplicate_threshold
        self._duplicate_k = duplicate_k

    @classmethod
    def from_settings(cls, settings: Settings) -> InMemoryVectorStore:
        return cls(
            duplicate_threshold=settings.duplicate_similarity_threshold,
            duplicate_k=settings.duplicate_query_k,
        )

    async def close(self) -> None:
        return None

    @property
    def size(self) -> int:
        return len(self._ids)

    def _compatible(self, vec: np.ndarray) -> bool:
        return self._embeddings is None or self._embeddings.shape[1] == vec.shape[0]

    async def ensure_collection(self) -> bool:
        return True

    async def upsert(
        self,
        complaint_id: int,
        vector: list[float],
        metadata: dict[str, Any],
        document: str,
    ) -> bool:
        if not vector:
            return False
        vec = np.asarray(vector, dtype=np.float32)
        if not self._compatible(vec):
            logger.warning("vector_store.dimension_mismatch", complaint_id=complaint_id, dimensions=vec.shape[0])
            return False

        key = str(complaint_id)
        if key in self._ids:
            idx = self._ids.index(key)
            self._embeddings[idx] = vec  # type: ignore[index]
            self._metadatas[idx] = _clean_metadata(metadata)
            self._documents[idx] = document
        else:
            row = vec.reshape(1, -1)
            self._embeddings = row if self._embeddings is None else np.vstack([self._embeddings, row])
            self._ids.append(key)
            self._metadatas.append(_clean_metadata(metadata))
            self._documents.append(document)

        logger.debug("vector_store.upserted", complaint_id=complaint_id, total=self.size)
        return True

    async def query(self, vector: list[float], k: int = 5) -> list[QueryCandidate]:
        if self._embeddings is None or not vector:
            return []
        query = np.asarray(vector, dtype=np.float32)
        if not self._compatible(query):
            return []

        query_norm = np.linalg.norm(query)
        if query_norm < 1e-10:
            logger.warning("vector_store.zero_norm_query")
            return []
        query = query / query_norm

        norms = np.maximum(np.linalg.norm(self._embeddings, axis=1, keepdims=True), 1e-10)
        similarities = (self._embeddings / norms) @ query

        n = self.size
        k = min(max(1, k), n)
        if k >= n:
            top = np.argsort(-similarities)[:k]
        else:
            partitioned = np.argpartition(-similarities, k)[:k]
            top = partitioned[np.argsort(-similarities[partitioned])]

        candidates: list[QueryCandidate] = []
        for idx in top:
            category = self._metadatas[int(idx)].get("category")
            if category is None:
                continue
            candidates.append(
                QueryCandidate(
                    category=str(category).upper(),
                    distance=float(1.0 - similarities[idx]),
                )
            )
        return candidates

    async def has_duplicate(self, vector: list[float]) -> bool:
        candidates = await self.query(vector, self._duplicate_k)
        return is_near_duplicate(candidates, self._duplicate_threshold)

    async def delete(self, complaint_id: int) -> bool:
        key = str(complaint_id)
        if key not in self._ids:
            return False
        idx = self._ids.index(key)
        del self._ids[idx]
        del self._metadatas[idx]
        del self._documents[idx]
        assert self._embeddings is not None  # noqa: S101
        self._embeddings = np.delete(self._embeddings, idx, axis=0)
        if self.size == 0:
            self._embeddings = None
        return True


def build_vector_store(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChromaVectorStore | InMemoryVectorStore:
    """Select the configured backend."""
    if settings.vector_backend == "memory":
        return InMemoryVectorStore.from_settings(settings)
    return ChromaVectorStore.from_settings(settings, transport=transport)
