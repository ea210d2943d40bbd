"""Tests for read-side match queries."""

from datetime import timedelta

import pytest

from mentormatch.config.models import MatchingConfig
from mentormatch.domain.models import MatchStatus, Mentorship
from mentormatch.matching.exceptions import MatchNotFound, MentorNotAvailable
from mentormatch.matching.queries import (
    CapacitySummary,
    MatchQueryService,
    MenteeQueueSummary,
    summarize_mentee_queue,
)
from mentormatch.persistence import MentorshipRepository, close_database, get_session, init_database
from mentormatch.utils.timestamps import utc_now
from tests.helpers import make_match, make_mentee, make_mentor, seed


@pytest.fixture(autouse=True)
def setup_database():
    """Setup test database before each test."""
    init_database("sqlite:///:memory:")
    seed(
        users=[
            make_mentor("mentor-1", capacity=4, active_mentees_count=1),
            make_mentor("mentor-2"),
            make_mentee("mentee-1"),
            make_mentee("mentee-2"),
            make_mentee("mentee-3"),
        ]
    )
    yield
    close_database()


@pytest.fixture
def queries():
    return MatchQueryService()


class TestClampLimit:
    @pytest.mark.parametrize(
        "requested,expected",
        [(None, 10), (0, 10), (5, 5), (50, 50), (500, 50), (-3, 1)],
    )
    def test_clamps_to_bounds(self, queries, requested, expected):
        assert queries.clamp_limit(requested) == expected

    def test_upper_bound_is_configurable(self):
        assert MatchQueryService(MatchingConfig(max_list_limit=20)).clamp_limit(40) == 20


class TestSuggestionLists:
    def test_mentor_list_is_open_unexpired_and_ranked(self, queries):
        now = utc_now()
        seed(
            matches=[
                make_match("a", mentee_id="mentee-1", score=50, updated_at=now - timedelta(hours=1)),
                make_match("b", mentee_id="mentee-2", score=50, updated_at=now),
                make_match("c", mentee_id="mentee-3", score=90, status=MatchStatus.MENTEE_ACCEPTED),
                make_match("d", mentor_id="mentor-2", mentee_id="mentee-1", score=99),
            ]
        )

        suggestions = queries.list_suggestions_for_mentor("mentor-1")

        assert [s.id for s in suggestions] == ["c", "b", "a"]

    def test_mentor_list_hides_expired_and_terminal(self, queries):
        seed(
            matches=[
                make_match("stale", mentee_id="mentee-1", expires_in_days=-2),
                make_match("declined", mentee_id="mentee-2", status=MatchStatus.MENTOR_DECLINED),
                make_match("live", mentee_id="mentee-3"),
            ]
        )

        assert [s.id for s in queries.list_suggestions_for_mentor("mentor-1")] == ["live"]

    def test_limit_applies(self, queries):
        seed(matches=[make_match(f"m{i}", mentee_id=f"mentee-{i}", score=10 * i) for i in (1, 2, 3)])

        assert [s.id for s in queries.list_suggestions_for_mentor("mentor-1", limit=2)] == ["m3", "m2"]

    def test_mentee_list(self, queries):
        seed(
            matches=[
                make_match("x", mentor_id="mentor-1", mentee_id="mentee-1", score=30),
                make_match("y", mentor_id="mentor-2", mentee_id="mentee-1", score=60),
            ]
        )

        assert [s.id for s in queries.list_suggestions_for_mentee("mentee-1")] == ["y", "x"]

    def test_mentee_queue_summary(self):
        summary = summarize_mentee_queue(
            [
                make_match("a", status=MatchStatus.MENTOR_ACCEPTED),
                make_match("b", status=MatchStatus.MENTOR_ACCEPTED),
                make_match("c", status=MatchStatus.MENTEE_ACCEPTED),
                make_match("d"),
            ]
        )

        assert summary == MenteeQueueSummary(awaiting_mentee=2, awaiting_mentor=1)


class TestDetailAndHistory:
    def test_detail_is_scoped_to_mentor(self, queries):
        seed(matches=[make_match()])

        assert queries.get_suggestion_detail("mentor-1", "match-1").mentee_id == "mentee-1"
        with pytest.raises(MatchNotFound):
            queries.get_suggestion_detail("mentor-2", "match-1")
        with pytest.raises(MatchNotFound):
            queries.get_suggestion_detail("mentor-1", "missing")

    def test_history_includes_every_status(self, queries):
        seed(
            matches=[
                make_match("a", mentee_id="mentee-1", status=MatchStatus.EXPIRED),
                make_match("b", mentee_id="mentee-2", status=MatchStatus.CONNECTED),
            ]
        )

        assert {m.id for m in queries.list_mentor_matches("mentor-1")} == {"a", "b"}
        assert [m.id for m in queries.list_mentee_matches("mentee-2")] == ["b"]

    def test_mentorship_lists(self, queries):
        seed(matches=[make_match(status=MatchStatus.CONNECTED)])
        with get_session() as session:
            MentorshipRepository(session).create(
                Mentorship(
                    id="ms-1",
                    mentor_id="mentor-1",
                    mentee_id="mentee-1",
                    match_request_id="match-1",
                    started_at=utc_now(),
                )
            )

        assert [m.id for m in queries.list_mentorships_for_mentor("mentor-1")] == ["ms-1"]
        assert [m.id for m in queries.list_mentorships_for_mentee("mentee-1")] == ["ms-1"]
        assert queries.list_mentorships_for_mentor("mentor-2") == []


class TestCapacitySummary:
    def test_reports_remaining_slots(self, queries):
        assert queries.get_capacity_summary("mentor-1") == CapacitySummary(
            capacity=4, active_mentees=1, remaining_slots=3
        )

    def test_applies_defaults(self, queries):
        assert queries.get_capacity_summary("mentor-2") == CapacitySummary(
            capacity=3, active_mentees=0, remaining_slots=3
        )

    @pytest.mark.parametrize("user_id", ["mentee-1", "ghost"])
    def test_non_mentor_is_rejected(self, queries, user_id):
        with pytest.raises(MentorNotAvailable):
            queries.get_capacity_summary(user_id)
