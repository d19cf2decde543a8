"""Persistence collaborators for complaints, users and Q&A history.

The core only needs create/save, find-by-id, find-by-owner, find-all and
count-by-field.  Each store is declared as a Protocol with an in-process
implementation; a database-backed store only has to satisfy the same
interface.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Protocol, runtime_checkable

import structlog

from complaintdesk.models.complaint import Complaint, QaHistoryRecord, User

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ComplaintRepository(Protocol):
    async def save(self, complaint: Complaint) -> Complaint: ...

    async def get(self, complaint_id: int) -> Complaint | None: ...

    async def find_by_owner(self, user_id: int) -> list[Complaint]: ...

    async def find_all(self) -> list[Complaint]: ...

    async def count_by_field(self, field: str) -> dict[str, int]: ...

    async def delete(self, complaint_id: int) -> bool: ...


@runtime_checkable
class UserRepository(Protocol):
    async def add(self, user: User) -> User: ...

    async def get(self, user_id: int) -> User | None: ...


@runtime_checkable
class QaHistoryRepository(Protocol):
    async def add(self, record: QaHistoryRecord) -> QaHistoryRecord: ...

    async def find_all(self) -> list[QaHistoryRecord]: ...

    async def find_recent_for_user(self, user_id: int, limit: int = 20) -> list[QaHistoryRecord]: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryComplaintRepository:
    """Dict-backed complaint store with sequential integer ids.

    ``created_at`` is fixed on first save; later saves of the same id keep
    the stored timestamp.
    """

    __slots__ = ("_data", "_lock", "_next_id")

    def __init__(self) -> None:
        self._data: dict[int, Complaint] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def save(self, complaint: Complaint) -> Complaint:
        async with self._lock:
            if complaint.id is None:
                stored = complaint.model_copy(update={"id": self._next_id})
                self._next_id += 1
            else:
                existing = self._data.get(complaint.id)
                update = {"created_at": existing.created_at} if existing is not None else {}
                stored = complaint.model_copy(update=update)
                self._next_id = max(self._next_id, complaint.id + 1)
            self._data[stored.id] = stored  # type: ignore[index]
        logger.debug("repository.complaint_saved", complaint_id=stored.id)
        return stored

    async def get(self, complaint_id: int) -> Complaint | None:
        async with self._lock:
            return self._data.get(complaint_id)

    async def find_by_owner(self, user_id: int) -> list[Complaint]:
        async with self._lock:
            return [c for c in self._data.values() if c.raised_by == user_id]

    async def find_all(self) -> list[Complaint]:
        async with self._lock:
            return list(self._data.values())

    async def count_by_field(self, field: str) -> dict[str, int]:
        """Group complaints by *field* (``"status"``, ``"category"``, ...)."""
        if field not in Complaint.model_fields:
            raise ValueError(f"Unknown complaint field: {field}")
        async with self._lock:
            counts = Counter(str(getattr(c, field)) for c in self._data.values())
        return dict(counts)

    async def delete(self, complaint_id: int) -> bool:
        async with self._lock:
            return self._data.pop(complaint_id, None) is not None


class InMemoryUserRepository:
    __slots__ = ("_data", "_lock")

    def __init__(self, users: list[User] | None = None) -> None:
        self._data: dict[int, User] = {u.id: u for u in users or []}
        self._lock = asyncio.Lock()

    async def add(self, user: User) -> User:
        async with self._lock:
            self._data[user.id] = user
        return user

    async def get(self, user_id: int) -> User | None:
        async with self._lock:
            return self._data.get(user_id)


class InMemoryQaHistoryRepository:
    """Append-only Q&A history."""

    __slots__ = ("_lock", "_records")

    def __init__(self) -> None:
        self._records: list[QaHistoryRecord] = []
        self._lock = asyncio.Lock()

    async def add(self, record: QaHistoryRecord) -> QaHistoryRecord:
        async with self._lock:
            stored = record.model_copy(update={"id": len(self._records) + 1})
            self._records.append(stored)
        return stored

    async def find_all(self) -> list[QaHistoryRecord]:
        async with self._lock:
            return list(self._records)

    async def find_recent_for_user(self, user_id: int, limit: int = 20) -> list[QaHistoryRecord]:
        """Newest first."""
        async with self._lock:
            mine = [r for r in self._records if r.user_id == user_id]
        mine.sort(key=lambda r: r.asked_at, reverse=True)
        return mine[:limit]
