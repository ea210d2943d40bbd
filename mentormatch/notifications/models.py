"""Result types and exceptions for the notification service."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when SMTP delivery fails."""

    pass


@dataclass
class NotificationResult:
    """Outcome of one send_notification call.

    The in-app record is always written when a result is returned; the email
    channel reports separately.

    Attributes:
        notification_id: Id of the stored in-app notification
        user_id: Recipient user id
        notification_type: Notification type value
        email_status: sent, skipped (channel disabled or no address) or failed
        attempts: Number of SMTP attempts made
        error: Last email error, if any
    """

    notification_id: str
    user_id: str
    notification_type: str
    email_status: str = "skipped"
    attempts: int = 0
    error: Optional[str] = None

    def email_sent(self) -> bool:
        return self.email_status == "sent"
