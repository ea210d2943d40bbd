"""Unit tests for the notification service."""

from unittest.mock import MagicMock

import pytest

from mentormatch.config.environment import EnvironmentConfig
from mentormatch.config.models import EmailConfig
from mentormatch.domain.models import Notification, NotificationType
from mentormatch.notifications.models import (
    NotificationTemplateError,
    SMTPDeliveryError,
)
from mentormatch.notifications.service import NotificationService, build_email_context
from mentormatch.persistence import (
    NotificationRepository,
    close_database,
    get_session,
    init_database,
)
from mentormatch.utils.timestamps import utc_now
from tests.helpers import make_mentee, make_mentor, seed


@pytest.fixture(autouse=True)
def setup_database():
    """Setup test database before each test."""
    init_database("sqlite:///:memory:")
    seed(users=[make_mentor(), make_mentee(email=None)])
    yield
    close_database()


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        smtp_host="smtp.example.org",
        smtp_port=587,
        smtp_user="matches@example.org",
        smtp_pass="secret",
    )


@pytest.fixture
def email_config():
    return EmailConfig(max_retries=2, retry_initial_delay=1.0, retry_backoff_multiplier=2.0)


@pytest.fixture
def smtp_client():
    return MagicMock()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def service(env_config, email_config, smtp_client, sleep):
    return NotificationService(
        env_config=env_config,
        email_config=email_config,
        smtp_client=smtp_client,
        sleep=sleep,
    )


def stored_notifications(user_id):
    with get_session() as session:
        return NotificationRepository(session).list_for_user(user_id)


def send_confirmation(service, user_id="mentor-1"):
    return service.send_notification(
        user_id=user_id,
        notification_type=NotificationType.MATCH_CONFIRMED,
        title="Mentorship confirmed",
        message="A mentorship connection has been created.",
        data={"mentorship_id": "ms-1", "match_request_id": "match-1"},
    )


def test_records_in_app_notification_without_email():
    service = NotificationService()

    result = send_confirmation(service)

    assert service.email_enabled is False
    assert result.email_status == "skipped"
    (stored,) = stored_notifications("mentor-1")
    assert stored.id == result.notification_id
    assert stored.type == NotificationType.MATCH_CONFIRMED
    assert stored.data == {"mentorship_id": "ms-1", "match_request_id": "match-1"}
    assert stored.read_at is None


def test_accepts_type_as_string():
    result = NotificationService().send_notification(
        "mentor-1", "MATCH_SUGGESTION", "New mentee suggestions ready", "We found 2 new mentees"
    )

    assert result.notification_type == "MATCH_SUGGESTION"


def test_sends_email_when_enabled(service, smtp_client):
    result = send_confirmation(service)

    assert result.email_sent()
    assert result.attempts == 1
    message = smtp_client.send.call_args.args[0]
    assert message["To"] == "mentor-1@example.org"
    assert message["Subject"] == "[Mentor Match] Mentorship confirmed"
    assert message["From"] == "Mentor Match <matches@example.org>"


def test_skips_email_for_user_without_address(service, smtp_client):
    result = send_confirmation(service, user_id="mentee-1")

    assert result.email_status == "skipped"
    smtp_client.send.assert_not_called()
    assert len(stored_notifications("mentee-1")) == 1


def test_retries_with_backoff_then_succeeds(service, smtp_client, sleep):
    smtp_client.send.side_effect = [SMTPDeliveryError("busy"), SMTPDeliveryError("busy"), None]

    result = send_confirmation(service)

    assert result.email_sent()
    assert result.attempts == 3
    assert result.error is None
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


def test_reports_failure_after_retries_exhausted(service, smtp_client, sleep):
    smtp_client.send.side_effect = SMTPDeliveryError("down")

    result = send_confirmation(service)

    assert result.email_status == "failed"
    assert result.attempts == 3
    assert result.error == "down"
    assert smtp_client.send.call_count == 3
    # The in-app record survives a failed email
    assert len(stored_notifications("mentor-1")) == 1


def test_template_error_fails_email_only(env_config, smtp_client):
    renderer = MagicMock()
    renderer.render.side_effect = NotificationTemplateError("bad template")
    service = NotificationService(
        env_config=env_config, template_renderer=renderer, smtp_client=smtp_client
    )

    result = send_confirmation(service)

    assert result.email_status == "failed"
    assert result.error == "bad template"
    smtp_client.send.assert_not_called()


def test_invalid_recipient_fails_email_only(service, smtp_client):
    seed(users=[make_mentor("mentor-2", email="not-an-email")])

    result = send_confirmation(service, user_id="mentor-2")

    assert result.email_status == "failed"
    smtp_client.send.assert_not_called()


def test_email_context_always_has_every_key():
    notification = Notification(
        id="n-1",
        user_id="mentor-1",
        type=NotificationType.MATCH_SUGGESTION,
        title="New mentee suggestions ready",
        message="We found 2 new mentees that match your expertise.",
        data={"mentor_id": "mentor-1", "match_count": 2},
        created_at=utc_now(),
    )

    context = build_email_context(notification, make_mentor(first_name=None, last_name=None, email=None))

    assert context["recipient_name"] == "there"
    assert context["match_count"] == 2
    assert context["match_request_id"] is None
    assert set(context) == {
        "recipient_name",
        "title",
        "message",
        "notification_type",
        "match_request_id",
        "match_count",
        "sent_at",
    }
