import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from starlette.requests import ClientDisconnect

from inbox_api.config import settings
from inbox_api.database import get_db, new_session
from inbox_api.logging_config import get_logger
from inbox_api.schemas.webhook import WebhookAck
from inbox_api.services.alert_service import alert_error, alert_warning
from inbox_api.services.ingestion_service import process_delivery, run_reply_job
from inbox_api.services.signature_service import SignatureError, ensure_valid_signature

logger = get_logger("meta_webhook")

router = APIRouter()

SIGNATURE_HEADER = "x-hub-signature-256"


@router.get("/webhooks/meta")
async def verify_meta_webhook(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Subscription handshake: echo hub.challenge when the verify token matches."""
    expected = settings.meta_webhook_verify_token
    if hub_mode == "subscribe" and expected and hub_verify_token == expected:
        logger.info("Meta webhook verified")
        return PlainTextResponse(hub_challenge or "")

    logger.warning(
        "Meta webhook verification rejected",
        extra={"context": {"mode": hub_mode, "token_configured": bool(expected)}},
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")


@router.post("/webhooks/meta", response_model=WebhookAck)
async def receive_meta_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Inbound Instagram / WhatsApp delivery.

    Always acknowledges with success once the signature is accepted; Meta
    redelivers anything else, and a payload we cannot process will never
    become processable.
    """
    try:
        raw_body = await request.body()
    except ClientDisconnect:
        logger.info("Meta webhook client disconnected during body read")
        return WebhookAck()

    try:
        ensure_valid_signature(raw_body, request.headers.get(SIGNATURE_HEADER))
    except SignatureError as exc:
        logger.warning("Meta webhook signature rejected", extra={"context": {"reason": str(exc)}})
        if settings.is_production:
            alert_warning("Meta webhook signature rejected", {"reason": str(exc)})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    if not raw_body.strip():
        logger.info("Meta webhook with empty body")
        return WebhookAck()

    try:
        body = json.loads(raw_body)
    except ValueError as exc:
        logger.warning(
            "Meta webhook payload is not valid JSON",
            extra={"context": {"error": str(exc), "body_preview": raw_body[:200].decode("utf-8", "ignore")}},
        )
        return WebhookAck()

    defer_replies = settings.auto_reply_in_background
    try:
        results = await process_delivery(db, body, defer_replies=defer_replies)
    except Exception as exc:
        logger.error("Meta webhook processing failed", extra={"context": {"error": str(exc)}}, exc_info=True)
        alert_error("Meta webhook processing failed", {"error": str(exc)})
        return WebhookAck()

    if defer_replies:
        for result in results:
            if result.reply_job is not None:
                background_tasks.add_task(run_reply_job, new_session, result.reply_job)

    logger.info(
        "Meta webhook processed",
        extra={
            "context": {
                "messages": len(results),
                "statuses": [result.status for result in results],
                "deferred_replies": defer_replies,
            }
        },
    )
    return WebhookAck()
