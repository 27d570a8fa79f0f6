"""Inbound message pipeline.

For each normalized message: claim id -> channel/lead -> conversation ->
canonical message -> legacy mirror -> notification -> auto-reply. Every step
commits its own small transaction so a failure late in the chain keeps what
was already stored, and a redelivery of the same message is a no-op.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from inbox_api.logging_config import LoggerAdapter, get_logger
from inbox_api.models import Conversation
from inbox_api.schemas.webhook import UnifiedMessagePayload
from inbox_api.services.auto_reply_service import resolve_auto_reply
from inbox_api.services.conversation_service import from_epoch_ms, get_or_create_conversation
from inbox_api.services.dedup_service import claim_message_id, release_message_id
from inbox_api.services.dispatch_service import DispatchResult, dispatch_reply
from inbox_api.services.identity_service import resolve_identity
from inbox_api.services.message_service import save_inbound_message, save_legacy_message
from inbox_api.services.normalizer_service import normalize_payload
from inbox_api.services.notification_service import notify_lead_owner

logger = get_logger("ingestion_service")

INGEST_PROCESSED = "processed"
INGEST_DUPLICATE = "duplicate"
INGEST_FAILED = "failed"


@dataclass
class ReplyJob:
    """Everything needed to evaluate rules and dispatch a reply in a fresh session."""

    platform: str
    conversation_id: UUID
    business_id: str
    recipient_id: str
    text: str
    external_id: str
    lead_id: Optional[UUID] = None


@dataclass
class IngestResult:
    external_id: str
    status: str
    conversation_id: Optional[UUID] = None
    message_id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    reply: Optional[DispatchResult] = None
    reply_job: Optional[ReplyJob] = None


def _log_for(payload: UnifiedMessagePayload) -> LoggerAdapter:
    return LoggerAdapter(logger, {"platform": payload.platform, "external_id": payload.external_id})


async def run_reply(db: Session, job: ReplyJob) -> Optional[DispatchResult]:
    """Evaluate auto-reply rules for an ingested message and send the reply, if any. Never raises."""
    log = LoggerAdapter(logger, {"platform": job.platform, "external_id": job.external_id})
    try:
        reply = await resolve_auto_reply(db, job.platform, job.text)
        if reply is None:
            log.info("No auto-reply for message")
            return None

        conversation = db.get(Conversation, job.conversation_id)
        if conversation is None:
            log.warning("Conversation vanished before reply", context={"conversation_id": str(job.conversation_id)})
            return None

        return await dispatch_reply(
            db,
            platform=job.platform,
            conversation=conversation,
            business_id=job.business_id,
            recipient_id=job.recipient_id,
            text=reply.text,
            ai_generated=reply.ai_generated,
            lead_id=job.lead_id,
        )
    except Exception as exc:
        db.rollback()
        log.error("Auto-reply step failed", context={"error": str(exc)}, exc_info=True)
        return None


async def run_reply_job(session_factory: Callable[[], Session], job: ReplyJob) -> Optional[DispatchResult]:
    """Background-task entry point: own session, closed when done."""
    db = session_factory()
    try:
        return await run_reply(db, job)
    finally:
        db.close()


async def process_message(
    db: Session,
    payload: UnifiedMessagePayload,
    *,
    defer_reply: bool = False,
) -> IngestResult:
    """Ingest one inbound message and, unless deferred, answer it.

    Raises on a failure before the canonical message is stored; the caller
    decides whether to continue with the rest of the delivery.
    """
    log = _log_for(payload)

    if not await claim_message_id(payload.platform, payload.external_id):
        return IngestResult(external_id=payload.external_id, status=INGEST_DUPLICATE)

    try:
        identity = resolve_identity(db, payload.platform, payload.sender_id, payload.sender_username)
        lead = identity.lead
        lead_id = lead.id if lead else None

        conversation = get_or_create_conversation(
            db, identity.channel.id, payload.sender_id, from_epoch_ms(payload.timestamp)
        )
        message, created = save_inbound_message(db, conversation, payload, lead_id=lead_id)
    except Exception:
        await release_message_id(payload.platform, payload.external_id)
        raise

    if not created:
        log.info("Redelivered message already stored, skipping", context={"conversation_id": str(conversation.id)})
        return IngestResult(
            external_id=payload.external_id,
            status=INGEST_DUPLICATE,
            conversation_id=conversation.id,
            message_id=message.id,
        )

    save_legacy_message(db, payload, lead_id=lead_id)
    notify_lead_owner(db, lead, payload.sender_id, payload.text)

    log.info(
        "Inbound message stored",
        context={
            "conversation_id": str(conversation.id),
            "message_id": str(message.id),
            "lead_id": str(lead_id) if lead_id else None,
            "lead_created": identity.lead_created,
        },
    )

    result = IngestResult(
        external_id=payload.external_id,
        status=INGEST_PROCESSED,
        conversation_id=conversation.id,
        message_id=message.id,
        lead_id=lead_id,
    )
    job = ReplyJob(
        platform=payload.platform,
        conversation_id=conversation.id,
        business_id=payload.recipient_id,
        recipient_id=payload.sender_id,
        text=payload.text,
        external_id=payload.external_id,
        lead_id=lead_id,
    )
    if defer_reply:
        result.reply_job = job
    else:
        result.reply = await run_reply(db, job)
    return result


async def process_delivery(db: Session, body: Any, *, defer_replies: bool = False) -> List[IngestResult]:
    """Process every message in one webhook delivery, one at a time, in order."""
    results: List[IngestResult] = []
    for payload in normalize_payload(body):
        try:
            results.append(await process_message(db, payload, defer_reply=defer_replies))
        except Exception as exc:
            db.rollback()
            logger.error(
                "Message ingestion failed",
                extra={
                    "context": {
                        "platform": payload.platform,
                        "external_id": payload.external_id,
                        "error": str(exc),
                    }
                },
                exc_info=True,
            )
            results.append(IngestResult(external_id=payload.external_id, status=INGEST_FAILED))
    return results
