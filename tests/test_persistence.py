"""Unit tests for persistence layer."""

from datetime import timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from mentormatch.domain.models import (
    ActorRole,
    AuditAction,
    MatchAudit,
    MatchStatus,
    Mentorship,
    Notification,
    NotificationType,
)
from mentormatch.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    MatchAuditRepository,
    MatchRequestRepository,
    MentorshipRepository,
    NotificationRepository,
    UserRepository,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from mentormatch.persistence.database import _redact_url
from mentormatch.utils.timestamps import utc_now
from tests.helpers import make_match, make_mentee, make_mentor, seed


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parents(self, tmp_path):
        db_file = tmp_path / "nested" / "mentormatch.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        with get_session() as session:
            assert session is not None

        close_database()

    def test_init_database_invalid_url_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

        with pytest.raises(DatabaseConnectionError):
            init_database(None)

    def test_schema_creation_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'test.db'}"

        init_database(db_url)
        close_database()
        init_database(db_url)

        with get_session() as session:
            tables = {
                row[0]
                for row in session.execute(
                    text("SELECT name FROM sqlite_master WHERE type='table'")
                )
            }

        assert {"users", "match_requests", "mentorships", "match_audits", "notifications"} <= tables
        close_database()

    def test_get_session_before_init_raises_error(self):
        close_database()

        with pytest.raises(DatabaseConnectionError):
            with get_session():
                pass

        with pytest.raises(DatabaseConnectionError):
            get_engine()

    def test_redact_url_hides_password(self):
        assert _redact_url("postgresql://app:secret@db:5432/mm") == "postgresql://app:***@db:5432/mm"
        assert _redact_url("sqlite:///./data/mm.db") == "sqlite:///./data/mm.db"


class TestSessionManagement:
    @pytest.fixture(autouse=True)
    def setup_database(self):
        """Setup test database before each test."""
        init_database("sqlite:///:memory:")
        yield
        close_database()

    def test_session_commits_on_success(self):
        with get_session() as session:
            UserRepository(session).upsert(make_mentor())

        with get_session() as session:
            assert UserRepository(session).get_by_id("mentor-1") is not None

    def test_session_rolls_back_on_error(self):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                UserRepository(session).upsert(make_mentor())
                raise RuntimeError("boom")

        with get_session() as session:
            assert UserRepository(session).get_by_id("mentor-1") is None


class TestUserRepository:
    @pytest.fixture(autouse=True)
    def setup_database(self):
        """Setup test database before each test."""
        init_database("sqlite:///:memory:")
        yield
        close_database()

    def test_upsert_round_trips_profile(self):
        mentor = make_mentor(capacity=4, active_mentees_count=1, priority="high")

        with get_session() as session:
            UserRepository(session).upsert(mentor)

        with get_session() as session:
            stored = UserRepository(session).get_by_id("mentor-1")

        assert stored == mentor

    def test_upsert_overwrites_existing(self):
        seed(users=[make_mentor()])

        with get_session() as session:
            UserRepository(session).upsert(make_mentor(program="Mathematics"))

        with get_session() as session:
            assert UserRepository(session).get_by_id("mentor-1").program == "Mathematics"

    def test_list_approved_mentors_filters_role_and_status(self):
        seed(
            users=[
                make_mentor("mentor-b"),
                make_mentor("mentor-a"),
                make_mentor("mentor-pending", application_status="pending"),
                make_mentee("mentee-1"),
            ]
        )

        with get_session() as session:
            mentors = UserRepository(session).list_approved_mentors()

        assert [mentor.id for mentor in mentors] == ["mentor-a", "mentor-b"]

    def test_list_candidate_mentees_excludes_and_limits(self):
        seed(
            users=[
                make_mentee("mentee-1"),
                make_mentee("mentee-2"),
                make_mentee("mentee-3"),
                make_mentee("mentee-4", application_status="rejected"),
                make_mentor("mentor-1"),
            ]
        )

        with get_session() as session:
            users = UserRepository(session)
            excluded = users.list_candidate_mentees({"mentee-2"}, limit=10)
            limited = users.list_candidate_mentees(set(), limit=2)

        assert [mentee.id for mentee in excluded] == ["mentee-1", "mentee-3"]
        assert len(limited) == 2

    def test_increment_active_mentees_respects_capacity(self):
        seed(users=[make_mentor(capacity=2, active_mentees_count=1)])

        with get_session() as session:
            users = UserRepository(session)
            assert users.increment_active_mentees("mentor-1", require_capacity=True) is True
            assert users.increment_active_mentees("mentor-1", require_capacity=True) is False

        with get_session() as session:
            assert UserRepository(session).get_by_id("mentor-1").active_mentees_count == 2

    def test_increment_active_mentees_without_capacity_check(self):
        seed(users=[make_mentor(capacity=1, active_mentees_count=1)])

        with get_session() as session:
            assert UserRepository(session).increment_active_mentees("mentor-1") is True

        with get_session() as session:
            assert UserRepository(session).get_by_id("mentor-1").active_mentees_count == 2

    def test_increment_active_mentees_treats_unset_as_defaults(self):
        seed(users=[make_mentor(capacity=None, active_mentees_count=None)])

        with get_session() as session:
            users = UserRepository(session)
            results = [users.increment_active_mentees("mentor-1", require_capacity=True) for _ in range(4)]

        assert results == [True, True, True, False]

    def test_increment_active_mentees_missing_mentor(self):
        with get_session() as session:
            assert UserRepository(session).increment_active_mentees("ghost") is False


class TestMatchRequestRepository:
    @pytest.fixture(autouse=True)
    def setup_database(self):
        """Setup test database before each test."""
        init_database("sqlite:///:memory:")
        seed(users=[make_mentor(), make_mentor("mentor-2"), make_mentee(), make_mentee("mentee-2")])
        yield
        close_database()

    def test_get_scoped_hides_other_participants(self):
        seed(matches=[make_match()])

        with get_session() as session:
            matches = MatchRequestRepository(session)
            assert matches.get_scoped("match-1", mentor_id="mentor-1") is not None
            assert matches.get_scoped("match-1", mentee_id="mentee-1") is not None
            assert matches.get_scoped("match-1", mentor_id="mentor-2") is None
            assert matches.get_scoped("match-1", mentee_id="mentee-2") is None
            assert matches.get_scoped("missing", mentor_id="mentor-1") is None

    def test_upsert_suggestion_inserts_as_suggested(self):
        candidate = make_match(status=MatchStatus.CONNECTED, notes="stale")

        with get_session() as session:
            match, is_new = MatchRequestRepository(session).upsert_suggestion(candidate)

        assert is_new is True
        assert match.status == MatchStatus.SUGGESTED
        assert match.notes is None

    def test_upsert_suggestion_refreshes_without_touching_status(self):
        seed(matches=[make_match(status=MatchStatus.MENTOR_ACCEPTED, notes="keen", score=40)])
        refreshed = make_match(match_id="other-id", score=90, expires_in_days=30)

        with get_session() as session:
            match, is_new = MatchRequestRepository(session).upsert_suggestion(refreshed)

        assert is_new is False
        assert match.id == "match-1"
        assert match.score == 90
        assert match.status == MatchStatus.MENTOR_ACCEPTED
        assert match.notes == "keen"
        assert match.expires_at > utc_now() + timedelta(days=29)

    def test_pair_is_unique(self):
        seed(matches=[make_match()])

        with pytest.raises(IntegrityError):
            seed(matches=[make_match(match_id="match-2")])

    def test_transition_status_is_conditional(self):
        seed(matches=[make_match()])
        now = utc_now()

        with get_session() as session:
            matches = MatchRequestRepository(session)
            first = matches.transition_status(
                "match-1", MatchStatus.SUGGESTED, MatchStatus.MENTOR_ACCEPTED, now, notes="yes"
            )
            second = matches.transition_status(
                "match-1", MatchStatus.SUGGESTED, MatchStatus.MENTOR_DECLINED, now
            )

        assert first is True
        assert second is False

        with get_session() as session:
            match = MatchRequestRepository(session).get_by_id("match-1")
        assert match.status == MatchStatus.MENTOR_ACCEPTED
        assert match.notes == "yes"

    def test_transition_status_keeps_notes_when_none(self):
        seed(matches=[make_match(notes="keep me")])

        with get_session() as session:
            MatchRequestRepository(session).transition_status(
                "match-1", MatchStatus.SUGGESTED, MatchStatus.MENTEE_ACCEPTED, utc_now()
            )

        with get_session() as session:
            assert MatchRequestRepository(session).get_by_id("match-1").notes == "keep me"

    def test_list_open_orders_by_score_and_skips_expired_and_terminal(self):
        now = utc_now()
        seed(
            matches=[
                make_match("low", mentee_id="mentee-1", score=40),
                make_match("high", mentor_id="mentor-1", mentee_id="mentee-2", score=80),
                make_match("expired", mentor_id="mentor-2", mentee_id="mentee-1", expires_in_days=-1),
                make_match(
                    "done",
                    mentor_id="mentor-2",
                    mentee_id="mentee-2",
                    status=MatchStatus.CONNECTED,
                ),
            ]
        )

        with get_session() as session:
            matches = MatchRequestRepository(session)
            for_mentor = matches.list_open_for_mentor("mentor-1", now, limit=10)
            for_mentor_limited = matches.list_open_for_mentor("mentor-1", now, limit=1)
            for_mentee = matches.list_open_for_mentee("mentee-1", now, limit=10)
            for_other_mentor = matches.list_open_for_mentor("mentor-2", now, limit=10)

        assert [m.id for m in for_mentor] == ["high", "low"]
        assert [m.id for m in for_mentor_limited] == ["high"]
        assert [m.id for m in for_mentee] == ["low"]
        assert for_other_mentor == []

    def test_list_for_mentor_includes_all_statuses_newest_first(self):
        now = utc_now()
        seed(
            matches=[
                make_match("old", updated_at=now - timedelta(days=2)),
                make_match(
                    "new",
                    mentee_id="mentee-2",
                    status=MatchStatus.MENTOR_DECLINED,
                    updated_at=now,
                ),
            ]
        )

        with get_session() as session:
            matches = MatchRequestRepository(session).list_for_mentor("mentor-1")

        assert [m.id for m in matches] == ["new", "old"]

    def test_mentee_ids_for_mentor(self):
        seed(matches=[make_match(), make_match("m2", mentor_id="mentor-2", mentee_id="mentee-2")])

        with get_session() as session:
            assert MatchRequestRepository(session).mentee_ids_for_mentor("mentor-1") == {"mentee-1"}

    def test_mentee_ids_for_mentor_progressed_only(self):
        seed(
            matches=[
                make_match(),
                make_match("m2", mentee_id="mentee-2", status=MatchStatus.MENTEE_ACCEPTED),
                make_match("m3", mentee_id="mentee-3", status=MatchStatus.EXPIRED),
            ]
        )

        with get_session() as session:
            ids = MatchRequestRepository(session).mentee_ids_for_mentor("mentor-1", progressed_only=True)

        assert ids == {"mentee-2", "mentee-3"}


class TestMentorshipRepository:
    @pytest.fixture(autouse=True)
    def setup_database(self):
        """Setup test database before each test."""
        init_database("sqlite:///:memory:")
        seed(users=[make_mentor(), make_mentee()], matches=[make_match()])
        yield
        close_database()

    def _mentorship(self, mentorship_id="ms-1", match_request_id="match-1"):
        return Mentorship(
            id=mentorship_id,
            mentor_id="mentor-1",
            mentee_id="mentee-1",
            match_request_id=match_request_id,
            started_at=utc_now(),
        )

    def test_create_and_lookup(self):
        with get_session() as session:
            MentorshipRepository(session).create(self._mentorship())

        with get_session() as session:
            repo = MentorshipRepository(session)
            found = repo.get_by_match_request("match-1")
            assert found.id == "ms-1"
            assert repo.mentee_ids_for_mentor("mentor-1") == {"mentee-1"}
            assert [m.id for m in repo.list_for_mentee("mentee-1")] == ["ms-1"]

    def test_second_mentorship_for_pair_raises_integrity_error(self):
        with get_session() as session:
            MentorshipRepository(session).create(self._mentorship())

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                MentorshipRepository(session).create(self._mentorship("ms-2"))


class TestAuditAndNotificationRepositories:
    @pytest.fixture(autouse=True)
    def setup_database(self):
        """Setup test database before each test."""
        init_database("sqlite:///:memory:")
        seed(users=[make_mentor(), make_mentee()], matches=[make_match()])
        yield
        close_database()

    def test_audits_listed_oldest_first(self):
        now = utc_now()
        with get_session() as session:
            audits = MatchAuditRepository(session)
            for offset, action in enumerate([AuditAction.SUGGESTED, AuditAction.MENTOR_ACCEPT]):
                audits.append(
                    MatchAudit(
                        id=f"audit-{offset}",
                        match_request_id="match-1",
                        actor_id="mentor-1",
                        actor_role=ActorRole.MENTOR,
                        action=action,
                        meta={"n": offset},
                        created_at=now + timedelta(seconds=offset),
                    )
                )

        with get_session() as session:
            stored = MatchAuditRepository(session).list_for_match("match-1")

        assert [a.action for a in stored] == [AuditAction.SUGGESTED, AuditAction.MENTOR_ACCEPT]
        assert stored[1].meta == {"n": 1}

    def test_audit_for_unknown_match_violates_foreign_key(self):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                MatchAuditRepository(session).append(
                    MatchAudit(
                        id="audit-x",
                        match_request_id="missing",
                        actor_id="mentor-1",
                        actor_role=ActorRole.SYSTEM,
                        action=AuditAction.EXPIRED,
                        created_at=utc_now(),
                    )
                )

    def test_notifications_listed_newest_first(self):
        now = utc_now()
        with get_session() as session:
            repo = NotificationRepository(session)
            for offset in range(2):
                repo.add(
                    Notification(
                        id=f"n-{offset}",
                        user_id="mentor-1",
                        type=NotificationType.MATCH_SUGGESTION,
                        title="t",
                        message="m",
                        data={"match_count": offset},
                        created_at=now + timedelta(seconds=offset),
                    )
                )

        with get_session() as session:
            stored = NotificationRepository(session).list_for_user("mentor-1")

        assert [n.id for n in stored] == ["n-1", "n-0"]
        assert stored[0].data == {"match_count": 1}
