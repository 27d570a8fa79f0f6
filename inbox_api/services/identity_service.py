from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inbox_api.config import settings
from inbox_api.logging_config import get_logger
from inbox_api.models import Channel, Lead

logger = get_logger("identity_service")

LEAD_POLICY_NEVER = "never"
LEAD_POLICY_INSTAGRAM = "instagram"
LEAD_POLICY_ALWAYS = "always"
LEAD_POLICIES = {LEAD_POLICY_NEVER, LEAD_POLICY_INSTAGRAM, LEAD_POLICY_ALWAYS}

INSTAGRAM_LEAD_SOURCE = "INSTAGRAM_DM"
WHATSAPP_LEAD_SOURCE = "WHATSAPP"


@dataclass
class ResolvedIdentity:
    channel: Channel
    lead: Optional[Lead] = None
    lead_created: bool = False


def get_lead_creation_policy() -> str:
    policy = (settings.lead_creation_policy or "").strip().lower()
    if policy not in LEAD_POLICIES:
        logger.warning(f"Unknown LEAD_CREATION_POLICY={policy!r}, falling back to '{LEAD_POLICY_NEVER}'")
        return LEAD_POLICY_NEVER
    return policy


def build_channel_name(platform: str, external_id: str) -> str:
    return f"{platform.title()} {external_id}"


def upsert_channel(db: Session, platform: str, external_id: str) -> Channel:
    """Find the channel for (platform, external_id) or create it; touch updated_at either way."""
    now = datetime.now(timezone.utc)
    channel = (
        db.query(Channel).filter(Channel.platform == platform, Channel.external_id == external_id).first()
    )
    if channel:
        channel.updated_at = now
        db.commit()
        return channel

    channel = Channel(
        platform=platform,
        external_id=external_id,
        name=build_channel_name(platform, external_id),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(channel)
    try:
        db.commit()
    except IntegrityError:
        # Another delivery created it first.
        db.rollback()
        channel = (
            db.query(Channel).filter(Channel.platform == platform, Channel.external_id == external_id).one()
        )
    return channel


def normalize_phone(sender_id: str) -> str:
    return (sender_id or "").strip().lstrip("+")


def find_lead_by_phone(db: Session, sender_id: str) -> Optional[Lead]:
    phone = normalize_phone(sender_id)
    if not phone:
        return None
    return db.query(Lead).filter(Lead.phone.contains(phone)).order_by(Lead.created_at).first()


def instagram_contact_email(sender_id: str) -> str:
    return f"{sender_id}@instagram.com"


def find_instagram_lead(db: Session, sender_id: str) -> Optional[Lead]:
    return (
        db.query(Lead)
        .filter(Lead.source == INSTAGRAM_LEAD_SOURCE, Lead.email == instagram_contact_email(sender_id))
        .first()
    )


def create_lead(db: Session, platform: str, sender_id: str, username: Optional[str] = None) -> Lead:
    now = datetime.now(timezone.utc)
    if platform == "INSTAGRAM":
        lead = Lead(
            name=username or f"Instagram User {sender_id}",
            email=instagram_contact_email(sender_id),
            source=INSTAGRAM_LEAD_SOURCE,
            status="new",
            score=70,
            priority="HIGH",
            created_at=now,
            updated_at=now,
        )
    else:
        lead = Lead(
            name=f"WhatsApp {normalize_phone(sender_id)}",
            phone=f"+{normalize_phone(sender_id)}",
            source=WHATSAPP_LEAD_SOURCE,
            status="new",
            score=50,
            priority="MEDIUM",
            created_at=now,
            updated_at=now,
        )
    db.add(lead)
    db.commit()
    logger.info(
        "Lead created from inbound message",
        extra={"context": {"platform": platform, "sender_id": sender_id, "lead_id": str(lead.id)}},
    )
    return lead


def resolve_lead(
    db: Session,
    platform: str,
    sender_id: str,
    username: Optional[str] = None,
) -> tuple[Optional[Lead], bool]:
    """Best-effort lead lookup. Returns (lead, created).

    WhatsApp matches on phone substring and only creates under the "always" policy.
    Instagram does no matching under "never"; otherwise it matches the synthesized
    contact email and creates the lead when missing.
    """
    policy = get_lead_creation_policy()

    if platform == "WHATSAPP":
        lead = find_lead_by_phone(db, sender_id)
        if lead or policy != LEAD_POLICY_ALWAYS:
            return lead, False
        return create_lead(db, platform, sender_id), True

    if policy == LEAD_POLICY_NEVER:
        return None, False
    lead = find_instagram_lead(db, sender_id)
    if lead:
        return lead, False
    return create_lead(db, platform, sender_id, username=username), True


def resolve_identity(
    db: Session,
    platform: str,
    sender_id: str,
    username: Optional[str] = None,
) -> ResolvedIdentity:
    channel = upsert_channel(db, platform, sender_id)

    try:
        lead, created = resolve_lead(db, platform, sender_id, username=username)
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Lead resolution failed; continuing without lead",
            extra={"context": {"platform": platform, "sender_id": sender_id, "error": str(exc)}},
        )
        lead, created = None, False

    return ResolvedIdentity(channel=channel, lead=lead, lead_created=created)
