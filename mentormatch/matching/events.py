"""Best-effort audit and notification side effects.

Both helpers run after the primary transition has committed, each in its own
session. A failure is logged and swallowed so it can never undo or fail the
transition that triggered it.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from mentormatch.domain.models import (
    ActorRole,
    AuditAction,
    MatchAudit,
    NotificationType,
)
from mentormatch.logging import get_logger
from mentormatch.notifications.service import NotificationService
from mentormatch.persistence.database import get_session
from mentormatch.persistence.repositories import MatchAuditRepository
from mentormatch.utils.identifiers import new_record_id
from mentormatch.utils.timestamps import utc_now

logger = get_logger(__name__, component="matching")


def record_audit(
    match_request_id: str,
    actor_id: str,
    actor_role: ActorRole,
    action: AuditAction,
    reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Optional[MatchAudit]:
    """Append an audit record, returning None if the write failed."""
    audit = MatchAudit(
        id=new_record_id(),
        match_request_id=match_request_id,
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        reason=reason,
        ip_address=ip_address,
        meta=meta or {},
        created_at=now or utc_now(),
    )
    try:
        with get_session() as session:
            return MatchAuditRepository(session).append(audit)
    except Exception as e:
        logger.warning(
            f"Match audit failed for {match_request_id} ({action.value}): {e}",
            extra={
                "event": "match.audit.failed",
                "match_request_id": match_request_id,
                "action": action.value,
                "error_type": type(e).__name__,
            },
        )
        return None


def notify_user(
    notifier: NotificationService,
    user_id: str,
    notification_type: NotificationType,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> bool:
    """Send a notification, returning False if it could not be delivered."""
    try:
        notifier.send_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        return True
    except Exception as e:
        logger.warning(
            f"{notification_type.value} notification to user {user_id} failed: {e}",
            extra={
                "event": "match.notification.failed",
                "user_id": user_id,
                "notification_type": notification_type.value,
                "error_type": type(e).__name__,
            },
        )
        return False
