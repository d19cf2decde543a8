"""Tests for table-driven field normalization."""

from __future__ import annotations

import pytest

from complaintdesk.models.enums import Category, MessageType, PriorityLevel, Status
from complaintdesk.services.normalization import (
    TEAM_BY_CATEGORY,
    Outcome,
    clean_value,
    lookup_enum,
    normalize_enum_value,
    normalize_labelled_category,
    normalize_message_type,
    normalize_priority_label,
    normalize_priority_score,
    normalize_room_type,
    normalize_scored_category,
    normalize_text,
    resolve_assigned_team,
)


class TestPrimitives:
    @pytest.mark.parametrize("raw", [None, "", "   ", "null", "NULL", " Null "])
    def test_clean_value_absent(self, raw: str | None) -> None:
        assert clean_value(raw) is None

    def test_clean_value_trims(self) -> None:
        assert clean_value("  A-Block ") == "A-Block"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("in progress", "IN_PROGRESS"),
            ("in-progress", "IN_PROGRESS"),
            (" positive feedback ", "POSITIVE_FEEDBACK"),
            ("null", None),
        ],
    )
    def test_normalize_enum_value(self, raw: str, expected: str | None) -> None:
        assert normalize_enum_value(raw) == expected

    def test_lookup_enum_status(self) -> None:
        result = lookup_enum(Status, "in-progress")
        assert result.outcome == Outcome.OK
        assert result.value == Status.IN_PROGRESS


class TestLabelledEnums:
    @pytest.mark.parametrize("raw", ["plumbing", "Plumbing", "PLUMBING", "  plumbing  "])
    def test_plumbing_variants(self, raw: str) -> None:
        result = normalize_labelled_category(raw)
        assert result.ok and result.value == Category.PLUMBING, f"'{raw}' should normalize to PLUMBING"

    @pytest.mark.parametrize("raw", [None, "null", "furniture", "GENERAL"])
    def test_category_rejected(self, raw: str | None) -> None:
        result = normalize_labelled_category(raw)
        assert result.outcome == Outcome.REJECTED
        assert result.value is None

    def test_message_type_with_hyphen(self) -> None:
        assert normalize_message_type("positive-feedback").value == MessageType.POSITIVE_FEEDBACK

    def test_message_type_rejected(self) -> None:
        assert not normalize_message_type("complaint").ok

    @pytest.mark.parametrize("raw", ["low", "Medium", "HIGH", "critical"])
    def test_priority_labels(self, raw: str) -> None:
        assert normalize_priority_label(raw).value == PriorityLevel(raw.upper())

    def test_priority_label_rejected(self) -> None:
        assert not normalize_priority_label("urgent").ok


class TestScoredDefaults:
    def test_category_match(self) -> None:
        result = normalize_scored_category("electrical")
        assert result.outcome == Outcome.OK and result.value == Category.ELECTRICAL

    def test_general_allowed(self) -> None:
        assert normalize_scored_category("general").value == Category.GENERAL

    @pytest.mark.parametrize("raw", [None, "furniture", ""])
    def test_category_defaults_to_general(self, raw: str | None) -> None:
        result = normalize_scored_category(raw)
        assert result.outcome == Outcome.DEFAULTED
        assert result.value == Category.GENERAL

    @pytest.mark.parametrize(("raw", "expected"), [("single", "Single"), ("DOUBLE", "Double"), (" Double ", "Double")])
    def test_room_type_match(self, raw: str, expected: str) -> None:
        result = normalize_room_type(raw)
        assert result.outcome == Outcome.OK and result.value == expected

    @pytest.mark.parametrize("raw", [None, "suite", "triple"])
    def test_room_type_defaults(self, raw: str | None) -> None:
        result = normalize_room_type(raw)
        assert result.outcome == Outcome.DEFAULTED and result.value == "Single"

    @pytest.mark.parametrize("raw", [1, 5, 10])
    def test_priority_score_in_range(self, raw: int) -> None:
        result = normalize_priority_score(raw)
        assert result.outcome == Outcome.OK and result.value == raw

    @pytest.mark.parametrize("raw", [None, 0, 11, -3])
    def test_priority_score_defaults_to_five(self, raw: int | None) -> None:
        result = normalize_priority_score(raw)
        assert result.outcome == Outcome.DEFAULTED and result.value == 5

    def test_text_default(self) -> None:
        assert normalize_text(None, "UNKNOWN").value == "UNKNOWN"
        assert normalize_text("null", "General").outcome == Outcome.DEFAULTED
        assert normalize_text(" A401 ", "UNKNOWN").value == "A401"


class TestTeamMapping:
    @pytest.mark.parametrize("category", list(Category))
    def test_every_category_has_a_team(self, category: Category) -> None:
        team = resolve_assigned_team(category)
        assert team, f"{category} must map to a team"

    def test_mapping_is_total_and_distinct(self) -> None:
        assert set(TEAM_BY_CATEGORY) == set(Category)
        assert len(set(TEAM_BY_CATEGORY.values())) == len(Category)

    def test_known_teams(self) -> None:
        assert resolve_assigned_team(Category.PLUMBING) == "Plumber Team"
        assert resolve_assigned_team(Category.ELECTRICAL) == "Electrician Team"
        assert resolve_assigned_team(Category.RAGGING) == "Warden Team"
        assert resolve_assigned_team(Category.CARPENTRY) == "Carpenter Team"
        assert resolve_assigned_team(Category.GENERAL) == "Admin Team"
