"""Tests for the Chroma REST client and the in-memory vector index."""

from __future__ import annotations

import httpx
import orjson
import pytest

from complaintdesk.services.vector_store import (
    ChromaVectorStore,
    InMemoryVectorStore,
    QueryCandidate,
    VectorStore,
    is_near_duplicate,
)

CHROMA_URL = "http://chroma.local:8000"
COLLECTION_ID = "3f0c1a2e-0000-4000-8000-000000000001"


class FakeChroma:
    """Minimal Chroma REST double recording every request."""

    def __init__(self, query_reply: dict | None = None, fail_paths: tuple[str, ...] = ()) -> None:
        self.requests: list[tuple[str, dict]] = []
        self.query_reply = query_reply or {"ids": [[]], "metadatas": [[]], "distances": [[]]}
        self.fail_paths = fail_paths

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = orjson.loads(request.content) if request.content else {}
        self.requests.append((path, body))

        if any(path.endswith(suffix) for suffix in self.fail_paths):
            return httpx.Response(500, text="chroma exploded")
        if path == "/api/v1/collections":
            return httpx.Response(200, json={"id": COLLECTION_ID, "name": body["name"], "metadata": body["metadata"]})
        if path.endswith("/query"):
            return httpx.Response(200, json=self.query_reply)
        return httpx.Response(200, json=True)

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]


def _store(fake: FakeChroma, **kwargs) -> ChromaVectorStore:
    return ChromaVectorStore(CHROMA_URL, transport=httpx.MockTransport(fake), **kwargs)


# -----------------------------------------------------------------------
# Duplicate decision
# -----------------------------------------------------------------------


class TestIsNearDuplicate:
    def test_no_candidates(self) -> None:
        assert is_near_duplicate([], 0.9) is False
        assert is_near_duplicate([], None) is False

    def test_any_neighbour_without_threshold(self) -> None:
        assert is_near_duplicate([QueryCandidate("PLUMBING", 0.8)], None) is True

    def test_close_neighbour_over_threshold(self) -> None:
        assert is_near_duplicate([QueryCandidate("PLUMBING", 0.05)], 0.9) is True

    def test_exactly_at_threshold(self) -> None:
        assert is_near_duplicate([QueryCandidate("PLUMBING", 0.25)], 0.75) is True

    def test_far_neighbour_under_threshold(self) -> None:
        assert is_near_duplicate([QueryCandidate("PLUMBING", 0.3)], 0.9) is False

    def test_missing_distance_under_threshold(self) -> None:
        assert is_near_duplicate([QueryCandidate("PLUMBING", None)], 0.9) is False


# -----------------------------------------------------------------------
# ChromaVectorStore
# -----------------------------------------------------------------------


class TestChromaVectorStore:
    async def test_satisfies_protocol(self) -> None:
        assert isinstance(_store(FakeChroma()), VectorStore)

    async def test_ensure_collection_body(self) -> None:
        fake = FakeChroma()
        store = _store(fake)
        assert await store.ensure_collection() is True

        path, body = fake.requests[0]
        assert path == "/api/v1/collections"
        assert body == {
            "name": "hostel_complaints_embeddings",
            "metadata": {"hnsw:space": "cosine"},
            "get_or_create": True,
        }

    async def test_ensure_collection_is_idempotent(self) -> None:
        fake = FakeChroma()
        store = _store(fake)
        await store.ensure_collection()
        await store.ensure_collection()
        assert fake.paths().count("/api/v1/collections") == 1, "collection should be resolved once"

    async def test_upsert_body(self) -> None:
        fake = FakeChroma()
        store = _store(fake)
        ok = await store.upsert(
            42,
            [0.1, 0.2],
            {"category": "PLUMBING", "room_no": None, "user_id": 7},
            "tap is leaking",
        )
        assert ok is True

        path, body = fake.requests[-1]
        assert path == f"/api/v1/collections/{COLLECTION_ID}/upsert"
        assert body == {
            "ids": ["42"],
            "embeddings": [[0.1, 0.2]],
            "metadatas": [{"category": "PLUMBING", "user_id": 7}],
            "documents": ["tap is leaking"],
        }

    async def test_query_body_and_parsing(self) -> None:
        fake = FakeChroma(
            query_reply={
                "ids": [["1", "2", "3"]],
                "metadatas": [[{"category": "plumbing"}, {"room_no": "A1"}, {"category": "Electrical"}]],
                "distances": [[0.05, 0.2, 0.4]],
            }
        )
        store = _store(fake)
        candidates = await store.query([0.1, 0.2], k=3)

        path, body = fake.requests[-1]
        assert path == f"/api/v1/collections/{COLLECTION_ID}/query"
        assert body == {
            "query_embeddings": [[0.1, 0.2]],
            "n_results": 3,
            "include": ["metadatas", "distances"],
        }
        assert candidates == [
            QueryCandidate("PLUMBING", 0.05),
            QueryCandidate("ELECTRICAL", 0.4),
        ], "categories are uppercased and entries without a category skipped"

    async def test_delete_body(self) -> None:
        fake = FakeChroma()
        store = _store(fake)
        assert await store.delete(9) is True
        path, body = fake.requests[-1]
        assert path == f"/api/v1/collections/{COLLECTION_ID}/delete"
        assert body == {"ids": ["9"]}

    async def test_has_duplicate_uses_threshold(self) -> None:
        near = FakeChroma(query_reply={"metadatas": [[{"category": "PLUMBING"}]], "distances": [[0.02]]})
        far = FakeChroma(query_reply={"metadatas": [[{"category": "PLUMBING"}]], "distances": [[0.5]]})
        assert await _store(near).has_duplicate([1.0]) is True
        assert await _store(far).has_duplicate([1.0]) is False

    async def test_has_duplicate_any_neighbour_mode(self) -> None:
        far = FakeChroma(query_reply={"metadatas": [[{"category": "PLUMBING"}]], "distances": [[0.5]]})
        assert await _store(far, duplicate_threshold=None).has_duplicate([1.0]) is True

    async def test_has_duplicate_empty_result(self) -> None:
        assert await _store(FakeChroma()).has_duplicate([1.0]) is False

    async def test_server_errors_never_raise(self) -> None:
        fake = FakeChroma(fail_paths=("/upsert", "/query", "/delete"))
        store = _store(fake)
        assert await store.upsert(1, [0.1], {"category": "PLUMBING"}, "doc") is False
        assert await store.query([0.1]) == []
        assert await store.has_duplicate([0.1]) is False
        assert await store.delete(1) is False

    async def test_unreachable_never_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = ChromaVectorStore(CHROMA_URL, transport=httpx.MockTransport(handler))
        assert await store.ensure_collection() is False
        assert await store.upsert(1, [0.1], {"category": "PLUMBING"}, "doc") is False
        assert await store.query([0.1]) == []
        assert await store.has_duplicate([0.1]) is False

    async def test_unconfigured_is_noop(self) -> None:
        fake = FakeChroma()
        store = ChromaVectorStore("", transport=httpx.MockTransport(fake))
        assert store.configured is False
        assert await store.ensure_collection() is False
        assert await store.upsert(1, [0.1], {"category": "PLUMBING"}, "doc") is False
        assert await store.query([0.1]) == []
        assert await store.has_duplicate([0.1]) is False
        assert fake.requests == [], "no request should leave an unconfigured store"

    async def test_empty_vector_not_sent(self) -> None:
        fake = FakeChroma()
        store = _store(fake)
        assert await store.upsert(1, [], {"category": "PLUMBING"}, "doc") is False
        assert fake.requests == []


# -----------------------------------------------------------------------
# InMemoryVectorStore
# -----------------------------------------------------------------------


class TestInMemoryVectorStore:
    async def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryVectorStore(), VectorStore)

    async def test_empty_query(self) -> None:
        store = InMemoryVectorStore()
        assert await store.query([1.0, 0.0]) == []
        assert await store.has_duplicate([1.0, 0.0]) is False

    async def test_nearest_first(self) -> None:
        store = InMemoryVectorStore()
        await store.upsert(1, [1.0, 0.0, 0.0], {"category": "PLUMBING"}, "a")
        await store.upsert(2, [0.0, 1.0, 0.0], {"category": "electrical"}, "b")
        await store.upsert(3, [0.7, 0.7, 0.0], {"category": "RAGGING"}, "c")

        candidates = await store.query([0.0, 1.0, 0.0], k=2)
        assert [c.category for c in candidates] == ["ELECTRICAL", "RAGGING"]
        assert candidates[0].distance == pytest.approx(0.0, abs=1e-6)

    async def test_upsert_overwrites_same_id(self) -> None:
        store = InMemoryVectorStore()
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        await store.upsert(1, [0.0, 1.0], {"category": "CARPENTRY"}, "b")
        assert store.size == 1
        candidates = await store.query([0.0, 1.0], k=1)
        assert candidates[0].category == "CARPENTRY"

    async def test_duplicate_threshold(self) -> None:
        store = InMemoryVectorStore(duplicate_threshold=0.9)
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        assert await store.has_duplicate([1.0, 0.05]) is True
        assert await store.has_duplicate([0.0, 1.0]) is False

    async def test_any_neighbour_mode(self) -> None:
        store = InMemoryVectorStore(duplicate_threshold=None)
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        assert await store.has_duplicate([0.0, 1.0]) is True

    async def test_dimension_mismatch_skipped(self) -> None:
        store = InMemoryVectorStore()
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        assert await store.upsert(2, [1.0, 0.0, 0.0], {"category": "PLUMBING"}, "b") is False
        assert await store.query([1.0, 0.0, 0.0]) == []
        assert store.size == 1

    async def test_delete(self) -> None:
        store = InMemoryVectorStore()
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        await store.upsert(2, [0.0, 1.0], {"category": "RAGGING"}, "b")
        assert await store.delete(1) is True
        assert await store.delete(1) is False
        candidates = await store.query([1.0, 0.0], k=5)
        assert [c.category for c in candidates] == ["RAGGING"]

    async def test_delete_last_resets_index(self) -> None:
        store = InMemoryVectorStore()
        await store.upsert(1, [1.0, 0.0], {"category": "PLUMBING"}, "a")
        await store.delete(1)
        assert store.size == 0
        assert await store.upsert(2, [1.0, 0.0, 0.0], {"category": "PLUMBING"}, "b") is True
