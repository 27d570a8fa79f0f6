from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import Lead, Notification

logger = get_logger("notification_service")

NOTIFICATION_TYPE_MESSAGE = "MESSAGE"
BODY_PREVIEW_CHARS = 50


def build_message_notification(lead: Lead, sender_id: str, text: str) -> Notification:
    return Notification(
        user_id=lead.assigned_to_id,
        lead_id=lead.id,
        type=NOTIFICATION_TYPE_MESSAGE,
        title=f"New message from {lead.name or sender_id}",
        body=(text or "")[:BODY_PREVIEW_CHARS],
        is_read=False,
        created_at=datetime.now(timezone.utc),
    )


def notify_lead_owner(db: Session, lead: Optional[Lead], sender_id: str, text: str) -> Optional[Notification]:
    """Alert the lead's assignee about new inbound activity. Never raises."""
    if lead is None or lead.assigned_to_id is None:
        return None

    try:
        notification = build_message_notification(lead, sender_id, text)
        db.add(notification)
        db.commit()
        return notification
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Notification insert failed",
            extra={"context": {"lead_id": str(lead.id), "error": str(exc)}},
        )
        return None
