"""Notification service for match events.

send_notification() records an in-app notification for the user and, when an
SMTP host is configured and the user has an email address, mirrors it as a
templated email delivered with retry/backoff.
"""

import logging
import time
from email.message import EmailMessage
from typing import Any, Callable, Dict, Optional, Union

from mentormatch.config.environment import EnvironmentConfig
from mentormatch.config.models import EmailConfig
from mentormatch.domain.models import Notification, NotificationType, UserProfile
from mentormatch.logging import get_logger
from mentormatch.logging.context import log_context
from mentormatch.persistence.database import get_session
from mentormatch.persistence.repositories import NotificationRepository, UserRepository
from mentormatch.utils.identifiers import new_record_id
from mentormatch.utils.timestamps import format_timestamp, utc_now

from .models import NotificationResult, NotificationTemplateError, SMTPDeliveryError
from .smtp_client import SMTPClient, build_sender_address, parse_recipient
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0


class NotificationService:
    """Records notifications and delivers them by email when configured.

    Each call runs in its own database session, so it must not be invoked
    while the caller holds an open session.
    """

    def __init__(
        self,
        env_config: Optional[EnvironmentConfig] = None,
        email_config: Optional[EmailConfig] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification service.

        Args:
            env_config: SMTP settings; email is disabled when None or without SMTP_HOST
            email_config: Retry settings (defaults when None)
            template_renderer: Template renderer (created lazily when email is enabled)
            smtp_client: SMTP client (creates default if None)
            sleep: Backoff sleep function, injectable for tests
            logger_instance: Logger instance (uses module logger if None)
        """
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self._template_renderer = template_renderer
        self.smtp_client = smtp_client or SMTPClient()
        self._sleep = sleep
        self.logger = logger_instance or logger

    @property
    def email_enabled(self) -> bool:
        return self.env_config is not None and self.env_config.email_enabled

    @property
    def template_renderer(self) -> TemplateRenderer:
        if self._template_renderer is None:
            self._template_renderer = TemplateRenderer()
        return self._template_renderer

    def send_notification(
        self,
        user_id: str,
        notification_type: Union[NotificationType, str],
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> NotificationResult:
        """Record a notification for ``user_id`` and optionally email it.

        Email failures are logged and reported in the result; they never raise.

        Raises:
            PersistenceError: If the in-app notification cannot be stored
        """
        ntype = NotificationType(notification_type)

        with log_context(user_id=user_id, notification_type=ntype.value):
            with get_session() as session:
                stored = NotificationRepository(session).add(
                    Notification(
                        id=new_record_id(),
                        user_id=user_id,
                        type=ntype,
                        title=title,
                        message=message,
                        data=dict(data or {}),
                        created_at=utc_now(),
                    )
                )
                recipient = (
                    UserRepository(session).get_by_id(user_id) if self.email_enabled else None
                )

            self.logger.info(
                f"Recorded {ntype.value} notification for user {user_id}",
                extra={"event": "notification.recorded", "notification_id": stored.id},
            )

            result = NotificationResult(
                notification_id=stored.id,
                user_id=user_id,
                notification_type=ntype.value,
            )

            if not self.email_enabled:
                return result

            if recipient is None or not recipient.email:
                self.logger.debug(
                    f"Skipping email for user {user_id} - no address on file",
                    extra={"event": "notification.email.skip", "reason": "no_address"},
                )
                return result

            return self._deliver_email(stored, recipient, result)

    def _deliver_email(
        self,
        notification: Notification,
        recipient: UserProfile,
        result: NotificationResult,
    ) -> NotificationResult:
        try:
            rendered = self.template_renderer.render(
                build_email_context(notification, recipient)
            )
        except NotificationTemplateError as e:
            result.email_status = "failed"
            result.error = str(e)
            return result

        try:
            email_message = EmailMessage()
            email_message["Subject"] = rendered["subject"]
            email_message["From"] = build_sender_address(self.env_config)
            email_message["To"] = parse_recipient(recipient.email)
            email_message.set_content(rendered["text_body"])
            email_message.add_alternative(rendered["html_body"], subtype="html")
        except ValueError as e:
            self.logger.error(f"Failed to build email message: {e}")
            result.email_status = "failed"
            result.error = str(e)
            return result

        max_attempts = self.email_config.max_retries + 1

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.email_config.retry_initial_delay * (
                    self.email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY_SECONDS)
                self.logger.warning(
                    f"Retrying email for notification {notification.id} "
                    f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                    extra={"event": "notification.send.attempt", "attempt": attempt},
                )
                self._sleep(delay)

            try:
                self.smtp_client.send(email_message, self.env_config, self.email_config.use_tls)
            except SMTPDeliveryError as e:
                result.error = str(e)
                result.attempts = attempt
                retry_remaining = attempt < max_attempts
                log = self.logger.warning if retry_remaining else self.logger.error
                log(
                    f"Email delivery failed for notification {notification.id} "
                    f"(attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "error_type": type(e).__name__,
                        "retry_remaining": retry_remaining,
                    },
                )
                continue

            result.email_status = "sent"
            result.attempts = attempt
            result.error = None
            self.logger.info(
                f"Email sent for notification {notification.id} (attempts: {attempt})",
                extra={"event": "notification.send.success", "attempt": attempt},
            )
            return result

        result.email_status = "failed"
        return result


def build_email_context(notification: Notification, recipient: UserProfile) -> Dict[str, Any]:
    """Template variables for a notification email.

    Every key the templates reference is always present.
    """
    return {
        "recipient_name": recipient.full_name or "there",
        "title": notification.title,
        "message": notification.message,
        "notification_type": notification.type.value,
        "match_request_id": notification.data.get("match_request_id"),
        "match_count": notification.data.get("match_count"),
        "sent_at": format_timestamp(notification.created_at),
    }
