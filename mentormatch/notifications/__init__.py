"""Notification delivery for match events.

- NotificationService: records in-app notifications, optionally emails them
- NotificationResult: outcome of a send
- TemplateRenderer: Jinja2-based email template rendering
- SMTPClient: SMTP wrapper with TLS/SSL support
"""

from .models import (
    NotificationError,
    NotificationResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .service import NotificationService, build_email_context
from .smtp_client import SMTPClient, build_sender_address, parse_recipient
from .templates import TemplateRenderer

__all__ = [
    "NotificationService",
    "NotificationResult",
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "TemplateRenderer",
    "SMTPClient",
    "build_email_context",
    "build_sender_address",
    "parse_recipient",
]
