from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import Conversation, InstagramMessage, Message, WhatsappMessage
from inbox_api.schemas.webhook import UnifiedMessagePayload
from inbox_api.services.account_service import find_instagram_account, find_whatsapp_account
from inbox_api.services.conversation_service import from_epoch_ms

logger = get_logger("message_service")

DIRECTION_INBOUND = "INBOUND"
DIRECTION_OUTBOUND = "OUTBOUND"


def find_message(db: Session, conversation_id: UUID, external_id: str) -> Optional[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id, Message.external_id == external_id)
        .first()
    )


def save_message(
    db: Session,
    conversation_id: UUID,
    external_id: str,
    direction: str,
    source: str,
    content: str,
    *,
    lead_id: Optional[UUID] = None,
    ai_generated: bool = False,
    created_at: Optional[datetime] = None,
) -> Message:
    """Save canonical message to database."""
    message = Message(
        conversation_id=conversation_id,
        lead_id=lead_id,
        external_id=external_id,
        direction=direction,
        source=source,
        content=content or "",
        ai_generated=ai_generated,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(message)
    db.commit()
    return message


def save_inbound_message(
    db: Session,
    conversation: Conversation,
    payload: UnifiedMessagePayload,
    lead_id: Optional[UUID] = None,
) -> Tuple[Message, bool]:
    """Persist the canonical inbound message once per (conversation, external id).

    Returns (message, created). created is False for a redelivered webhook.
    """
    existing = find_message(db, conversation.id, payload.external_id)
    if existing:
        return existing, False

    try:
        message = save_message(
            db,
            conversation.id,
            payload.external_id,
            DIRECTION_INBOUND,
            payload.platform,
            payload.text,
            lead_id=lead_id,
            created_at=from_epoch_ms(payload.timestamp),
        )
    except IntegrityError:
        db.rollback()
        existing = find_message(db, conversation.id, payload.external_id)
        if existing is None:
            raise
        return existing, False
    return message, True


def save_legacy_message(
    db: Session,
    payload: UnifiedMessagePayload,
    *,
    direction: str = DIRECTION_INBOUND,
    lead_id: Optional[UUID] = None,
) -> bool:
    """Mirror an inbound message into the platform-shaped table. Failures are logged, not raised."""
    try:
        sent_at = from_epoch_ms(payload.timestamp)
        if payload.platform == "WHATSAPP":
            account = find_whatsapp_account(db, payload.recipient_id)
            record = WhatsappMessage(
                whatsapp_account_id=account.id if account else None,
                lead_id=lead_id,
                sender_id=payload.sender_id,
                recipient_id=payload.recipient_id,
                phone=payload.sender_id,
                message=payload.text,
                external_id=payload.external_id,
                direction=direction,
                sent_at=sent_at,
            )
        else:
            account = find_instagram_account(db, payload.recipient_id)
            record = InstagramMessage(
                instagram_account_id=account.id if account else None,
                lead_id=lead_id,
                sender_id=payload.sender_id,
                recipient_id=payload.recipient_id,
                username=payload.sender_username,
                message=payload.text,
                external_id=payload.external_id,
                direction=direction,
                sent_at=sent_at,
            )
        db.add(record)
        db.commit()
        return True
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Legacy message mirror failed",
            extra={
                "context": {
                    "platform": payload.platform,
                    "external_id": payload.external_id,
                    "error": str(exc),
                }
            },
        )
        return False


def save_outbound_whatsapp_legacy(
    db: Session,
    *,
    business_phone_id: str,
    recipient_phone: str,
    text: str,
    external_id: str,
    lead_id: Optional[UUID] = None,
) -> bool:
    try:
        account = find_whatsapp_account(db, business_phone_id)
        record = WhatsappMessage(
            whatsapp_account_id=account.id if account else None,
            lead_id=lead_id,
            sender_id=business_phone_id,
            recipient_id=recipient_phone,
            phone=recipient_phone,
            message=text,
            external_id=external_id,
            direction=DIRECTION_OUTBOUND,
            sent_at=datetime.now(timezone.utc),
        )
        db.add(record)
        db.commit()
        return True
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Outbound WhatsApp mirror failed",
            extra={"context": {"external_id": external_id, "error": str(exc)}},
        )
        return False
