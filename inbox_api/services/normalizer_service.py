"""Convert raw Meta webhook bodies into UnifiedMessagePayload records.

Two independent parsers, one per platform, each validating its own schema.
Anything that does not look like an inbound user message yields nothing.
"""

import time
from typing import Any, Optional

from pydantic import ValidationError

from inbox_api.logging_config import get_logger
from inbox_api.schemas.webhook import (
    InstagramMessagingEvent,
    InstagramWebhookPayload,
    MetaModel,
    MetaWebhookPayload,
    UnifiedMessagePayload,
    WhatsAppInboundMessage,
    WhatsAppWebhookPayload,
)

logger = get_logger("normalizer")

INSTAGRAM_OBJECTS = {"instagram", "page"}
WHATSAPP_MESSAGES_FIELD = "messages"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_whatsapp_messages_change(payload: dict) -> bool:
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            if isinstance(change, dict) and change.get("field") == WHATSAPP_MESSAGES_FIELD:
                return True
    return False


def _valid_items(items: Any, model: type[MetaModel], platform: str) -> Any:
    """Keep the items that validate against `model`; log and drop the rest."""
    if not isinstance(items, list):
        return items
    kept = []
    for item in items:
        try:
            model.model_validate(item)
        except ValidationError as exc:
            item_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(
                "Dropping malformed webhook message",
                extra={"context": {"platform": platform, "id": item_id, "errors": exc.errors()[:5]}},
            )
            continue
        kept.append(item)
    return kept


def _drop_invalid_messages(payload: dict, platform: str) -> dict:
    """Copy of the payload without the messaging events or messages that fail validation."""
    entries = []
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            entries.append(entry)
            continue
        if platform == "INSTAGRAM":
            if "messaging" in entry:
                entry = {**entry, "messaging": _valid_items(entry["messaging"], InstagramMessagingEvent, platform)}
        else:
            changes = []
            for change in entry.get("changes") or []:
                value = change.get("value") if isinstance(change, dict) else None
                if isinstance(value, dict) and "messages" in value:
                    messages = _valid_items(value["messages"], WhatsAppInboundMessage, platform)
                    change = {**change, "value": {**value, "messages": messages}}
                changes.append(change)
            entry = {**entry, "changes": changes}
        entries.append(entry)
    return {**payload, "entry": entries}


def parse_meta_payload(payload: Any) -> Optional[MetaWebhookPayload]:
    """Detect the platform and validate against that platform's schema.

    Malformed individual messages are dropped so the rest of the delivery survives.
    """
    if not isinstance(payload, dict):
        return None

    try:
        if payload.get("object") in INSTAGRAM_OBJECTS:
            return InstagramWebhookPayload.model_validate(_drop_invalid_messages(payload, "INSTAGRAM"))
        if _is_whatsapp_messages_change(payload):
            return WhatsAppWebhookPayload.model_validate(_drop_invalid_messages(payload, "WHATSAPP"))
    except ValidationError as exc:
        logger.warning(
            "Webhook payload failed schema validation",
            extra={"context": {"object": payload.get("object"), "errors": exc.errors()[:5]}},
        )
        return None

    logger.info(
        "Webhook payload ignored (no inbound messages)",
        extra={"context": {"object": payload.get("object"), "keys": list(payload.keys())[:20]}},
    )
    return None


def normalize_instagram(payload: InstagramWebhookPayload) -> list[UnifiedMessagePayload]:
    messages: list[UnifiedMessagePayload] = []
    for entry in payload.entry:
        for event in entry.messaging:
            message = event.message
            if message is None:
                continue
            # Echoes of our own sends and non-user senders are not leads talking to us.
            if message.is_echo or event.sender.is_user is False:
                continue

            timestamp = event.timestamp or entry.time or _now_ms()
            recipient_id = event.recipient.id if event.recipient else (entry.id or "")
            messages.append(
                UnifiedMessagePayload(
                    platform="INSTAGRAM",
                    timestamp=timestamp,
                    external_id=message.mid or f"ig_{timestamp}",
                    sender_id=event.sender.id,
                    recipient_id=recipient_id,
                    text=message.text or "",
                    sender_username=event.sender.username,
                )
            )
    return messages


def _whatsapp_timestamp_ms(raw: Optional[str]) -> int:
    if raw is None:
        return _now_ms()
    try:
        return int(raw) * 1000
    except (TypeError, ValueError):
        logger.warning(f"Unparseable WhatsApp timestamp: {raw!r}")
        return _now_ms()


def normalize_whatsapp(payload: WhatsAppWebhookPayload) -> list[UnifiedMessagePayload]:
    messages: list[UnifiedMessagePayload] = []
    for entry in payload.entry:
        for change in entry.changes:
            if change.field != WHATSAPP_MESSAGES_FIELD or change.value is None:
                continue
            value = change.value
            business_phone_id = value.metadata.phone_number_id if value.metadata else ""
            for message in value.messages:
                if message.type == "text":
                    text = message.text.body if message.text else ""
                else:
                    text = f"[{message.type.upper()}]"
                messages.append(
                    UnifiedMessagePayload(
                        platform="WHATSAPP",
                        timestamp=_whatsapp_timestamp_ms(message.timestamp),
                        external_id=message.id,
                        sender_id=message.sender,
                        recipient_id=business_phone_id,
                        text=text,
                    )
                )
    return messages


def normalize_payload(payload: Any) -> list[UnifiedMessagePayload]:
    parsed = parse_meta_payload(payload)
    if parsed is None:
        return []
    if parsed.kind == "instagram":
        return normalize_instagram(parsed)
    return normalize_whatsapp(parsed)
