"""Tests for the in-memory repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from complaintdesk.models.complaint import Complaint, QaHistoryRecord, User
from complaintdesk.models.enums import Category, MessageType, Status
from complaintdesk.services.repository import (
    ComplaintRepository,
    InMemoryComplaintRepository,
    InMemoryQaHistoryRepository,
    InMemoryUserRepository,
    QaHistoryRepository,
    UserRepository,
)


def _complaint(raised_by: int = 1, category: Category = Category.PLUMBING) -> Complaint:
    return Complaint(category=category, message_type=MessageType.GRIEVANCE, description="leak", raised_by=raised_by)


class TestProtocols:
    def test_implementations_satisfy_protocols(self) -> None:
        assert isinstance(InMemoryComplaintRepository(), ComplaintRepository)
        assert isinstance(InMemoryUserRepository(), UserRepository)
        assert isinstance(InMemoryQaHistoryRepository(), QaHistoryRepository)


class TestComplaintRepository:
    async def test_sequential_ids(self) -> None:
        repo = InMemoryComplaintRepository()
        first = await repo.save(_complaint())
        second = await repo.save(_complaint())
        assert (first.id, second.id) == (1, 2)

    async def test_resave_keeps_created_at(self) -> None:
        repo = InMemoryComplaintRepository()
        saved = await repo.save(_complaint())
        later = saved.model_copy(
            update={"status": Status.RESOLVED, "created_at": saved.created_at + timedelta(days=2)}
        )
        updated = await repo.save(later)
        assert updated.status == Status.RESOLVED
        assert updated.created_at == saved.created_at

    async def test_explicit_id_advances_counter(self) -> None:
        repo = InMemoryComplaintRepository()
        await repo.save(_complaint().model_copy(update={"id": 10}))
        assert (await repo.save(_complaint())).id == 11

    async def test_find_by_owner(self) -> None:
        repo = InMemoryComplaintRepository()
        await repo.save(_complaint(raised_by=1))
        await repo.save(_complaint(raised_by=2))
        owned = await repo.find_by_owner(2)
        assert [c.raised_by for c in owned] == [2]

    async def test_count_by_field(self) -> None:
        repo = InMemoryComplaintRepository()
        await repo.save(_complaint(category=Category.PLUMBING))
        await repo.save(_complaint(category=Category.PLUMBING))
        await repo.save(_complaint(category=Category.RAGGING))
        assert await repo.count_by_field("category") == {"PLUMBING": 2, "RAGGING": 1}
        assert await repo.count_by_field("status") == {"OPEN": 3}

    async def test_count_by_unknown_field(self) -> None:
        with pytest.raises(ValueError):
            await InMemoryComplaintRepository().count_by_field("colour")

    async def test_delete(self) -> None:
        repo = InMemoryComplaintRepository()
        saved = await repo.save(_complaint())
        assert await repo.delete(saved.id) is True
        assert await repo.get(saved.id) is None
        assert await repo.delete(saved.id) is False


class TestUserRepository:
    async def test_lookup(self) -> None:
        repo = InMemoryUserRepository([User(id=3, username="ravi")])
        assert (await repo.get(3)).username == "ravi"
        assert await repo.get(4) is None

    async def test_add_replaces_by_id(self) -> None:
        repo = InMemoryUserRepository()
        await repo.add(User(id=3, username="ravi"))
        await repo.add(User(id=3, username="ravi.k"))
        assert (await repo.get(3)).username == "ravi.k"


class TestQaHistoryRepository:
    async def test_recent_newest_first_and_limited(self) -> None:
        repo = InMemoryQaHistoryRepository()
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for i in range(25):
            await repo.add(
                QaHistoryRecord(user_id=1, admin=False, question=f"q{i}", answer="a", asked_at=base + timedelta(hours=i))
            )
        await repo.add(QaHistoryRecord(user_id=2, admin=False, question="other", answer="a"))

        recent = await repo.find_recent_for_user(1)
        assert len(recent) == 20
        assert recent[0].question == "q24"
        assert all(r.user_id == 1 for r in recent)

    async def test_ids_assigned(self) -> None:
        repo = InMemoryQaHistoryRepository()
        stored = await repo.add(QaHistoryRecord(user_id=1, admin=True, question="q", answer="a"))
        assert stored.id == 1
