from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import Conversation

logger = get_logger("conversation_service")

STATUS_ACTIVE = "ACTIVE"
STATUS_ARCHIVED = "ARCHIVED"
STATUS_CLOSED = "CLOSED"


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def as_utc(value: Optional[datetime]) -> datetime:
    """Attach UTC to naive datetimes (some backends drop the offset on read)."""
    if not isinstance(value, datetime):
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def find_active_conversation(db: Session, channel_id: UUID) -> Optional[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.channel_id == channel_id, Conversation.status == STATUS_ACTIVE)
        .order_by(Conversation.last_message_at.desc())
        .first()
    )


def touch_conversation(db: Session, conversation: Conversation, message_at: datetime) -> Conversation:
    """Bump last_message_at, never moving it backwards for late deliveries."""
    current = conversation.last_message_at
    if current is None or as_utc(message_at) > as_utc(current):
        conversation.last_message_at = message_at
        db.commit()
    return conversation


def get_or_create_conversation(
    db: Session,
    channel_id: UUID,
    contact_id: str,
    message_at: datetime,
) -> Conversation:
    """Find the ACTIVE conversation for a channel or open a new one."""
    conversation = find_active_conversation(db, channel_id)
    if conversation:
        return touch_conversation(db, conversation, message_at)

    conversation = Conversation(
        channel_id=channel_id,
        contact_id=contact_id,
        status=STATUS_ACTIVE,
        last_message_at=message_at,
        created_at=datetime.now(timezone.utc),
    )
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race on the one-active-per-channel index; use the winner.
        db.rollback()
        logger.info(
            "Concurrent conversation create; reusing existing",
            extra={"context": {"channel_id": str(channel_id)}},
        )
        conversation = find_active_conversation(db, channel_id)
        if conversation is None:
            raise
        return touch_conversation(db, conversation, message_at)

    logger.info(
        "Conversation opened",
        extra={"context": {"channel_id": str(channel_id), "conversation_id": str(conversation.id)}},
    )
    return conversation
