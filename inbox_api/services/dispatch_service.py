import time
from dataclasses import dataclass
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import Conversation, Message
from inbox_api.services.account_service import get_access_token
from inbox_api.services.alert_service import alert_warning
from inbox_api.services.audit_service import log_audit
from inbox_api.services.message_service import (
    DIRECTION_OUTBOUND,
    save_message,
    save_outbound_whatsapp_legacy,
)
from inbox_api.services.meta_client import (
    MetaAPIError,
    extract_sent_message_id,
    send_instagram_message,
    send_whatsapp_message,
)

logger = get_logger("dispatch_service")

AUDIT_ACTION_AUTO_REPLY = "AUTO_REPLY_SENT"


@dataclass
class DispatchResult:
    sent: bool
    reason: Optional[str] = None
    message: Optional[Message] = None
    external_id: Optional[str] = None


def synthesize_outbound_id(platform: str) -> str:
    return f"auto_{platform.lower()}_{int(time.time() * 1000)}_{uuid4().hex[:8]}"


async def send_platform_message(
    platform: str,
    business_id: str,
    recipient_id: str,
    text: str,
    access_token: str,
) -> dict:
    if platform == "WHATSAPP":
        return await send_whatsapp_message(business_id, recipient_id, text, access_token)
    return await send_instagram_message(recipient_id, text, access_token)


async def dispatch_reply(
    db: Session,
    *,
    platform: str,
    conversation: Conversation,
    business_id: str,
    recipient_id: str,
    text: str,
    ai_generated: bool = False,
    lead_id: Optional[UUID] = None,
) -> DispatchResult:
    """Send an auto-reply and record it. Never raises.

    The webhook has already been accepted by the time this runs, so a failed
    send is logged and alerted but not retried here.
    """
    context = {
        "platform": platform,
        "conversation_id": str(conversation.id),
        "recipient_id": recipient_id,
    }

    access_token = get_access_token(db, platform, business_id)
    if not access_token:
        logger.warning(
            "No access token for business account, reply not sent",
            extra={"context": {**context, "business_id": business_id}},
        )
        return DispatchResult(sent=False, reason="no_access_token")

    try:
        response = await send_platform_message(platform, business_id, recipient_id, text, access_token)
    except MetaAPIError as exc:
        logger.error(
            "Auto-reply send failed",
            extra={"context": {**context, "status_code": exc.status_code, "error": str(exc)}},
        )
        alert_warning("Auto-reply send failed", {**context, "error": str(exc)})
        return DispatchResult(sent=False, reason="send_failed")
    except Exception as exc:
        logger.error(
            "Auto-reply send raised unexpectedly",
            extra={"context": {**context, "error": str(exc)}},
            exc_info=True,
        )
        alert_warning("Auto-reply send raised unexpectedly", {**context, "error": str(exc)})
        return DispatchResult(sent=False, reason="send_failed")

    external_id = extract_sent_message_id(platform, response) or synthesize_outbound_id(platform)

    message = None
    try:
        message = save_message(
            db,
            conversation.id,
            external_id,
            DIRECTION_OUTBOUND,
            platform,
            text,
            lead_id=lead_id,
            ai_generated=ai_generated,
        )
    except Exception as exc:
        db.rollback()
        logger.error(
            "Outbound message not recorded",
            extra={"context": {**context, "external_id": external_id, "error": str(exc)}},
        )

    if platform == "WHATSAPP":
        save_outbound_whatsapp_legacy(
            db,
            business_phone_id=business_id,
            recipient_phone=recipient_id,
            text=text,
            external_id=external_id,
            lead_id=lead_id,
        )

    source = "AI" if ai_generated else "rule"
    log_audit(
        db,
        AUDIT_ACTION_AUTO_REPLY,
        f"Auto-reply ({source}) sent on {platform} to {recipient_id}",
        entity_id=str(conversation.id),
    )

    logger.info(
        "Auto-reply sent",
        extra={"context": {**context, "external_id": external_id, "ai_generated": ai_generated}},
    )
    return DispatchResult(sent=True, message=message, external_id=external_id)
