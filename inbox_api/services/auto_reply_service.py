from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Awaitable, Callable, List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import AIAssistant, AutoReplyRule
from inbox_api.services.ai_service import build_reply_context, generate_reply

logger = get_logger("auto_reply_service")

WILDCARD_KEYWORD = "*"
PLATFORM_ALL = "ALL"

ReplyGenerator = Callable[[List[dict], str], Awaitable[Optional[str]]]


@dataclass
class AutoReply:
    text: str
    ai_generated: bool = False
    rule_id: Optional[UUID] = None


def load_active_rules(db: Session, platform: str) -> List[AutoReplyRule]:
    return (
        db.query(AutoReplyRule)
        .filter(
            AutoReplyRule.is_active == True,  # noqa: E712
            AutoReplyRule.platform.in_([PLATFORM_ALL, platform]),
        )
        .order_by(AutoReplyRule.priority.desc(), AutoReplyRule.created_at)
        .all()
    )


def _parse_hhmm(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    try:
        hours, minutes = value.strip().split(":", 1)
        return time(int(hours), int(minutes))
    except (ValueError, TypeError):
        return None


def _rule_zone(rule: AutoReplyRule) -> ZoneInfo:
    name = (rule.timezone or "UTC").strip() or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r} on rule {rule.id}, using UTC")
        return ZoneInfo("UTC")


def is_within_time_window(rule: AutoReplyRule, now: Optional[datetime] = None) -> bool:
    """Restricted rules only fire between start_time and end_time in the rule's timezone."""
    if not rule.time_restriction_enabled:
        return True

    start = _parse_hhmm(rule.start_time)
    end = _parse_hhmm(rule.end_time)
    if start is None or end is None:
        logger.warning(f"Rule {rule.id} has an invalid time window, treating as unrestricted")
        return True

    now = now or datetime.now(timezone.utc)
    local = now.astimezone(_rule_zone(rule)).time().replace(second=0, microsecond=0)
    if start <= end:
        return start <= local <= end
    # Window wraps past midnight (e.g. 22:00-06:00)
    return local >= start or local <= end


def rule_matches(rule: AutoReplyRule, text: str) -> bool:
    keyword = (rule.keyword or "").strip()
    if keyword == WILDCARD_KEYWORD:
        return True
    if not keyword:
        return False
    return keyword.lower() in (text or "").lower()


def find_matching_rule(
    rules: List[AutoReplyRule],
    text: str,
    now: Optional[datetime] = None,
) -> Optional[AutoReplyRule]:
    for rule in rules:
        if not is_within_time_window(rule, now):
            continue
        if rule_matches(rule, text):
            return rule
    return None


def get_active_assistant(db: Session, assistant_id: Optional[UUID]) -> Optional[AIAssistant]:
    if not assistant_id:
        return None
    return (
        db.query(AIAssistant)
        .filter(AIAssistant.id == assistant_id, AIAssistant.is_active == True)  # noqa: E712
        .first()
    )


async def build_rule_reply(
    db: Session,
    rule: AutoReplyRule,
    platform: str,
    text: str,
    generate: ReplyGenerator = generate_reply,
) -> Optional[AutoReply]:
    if rule.use_ai:
        assistant = get_active_assistant(db, rule.assistant_id)
        if assistant:
            try:
                generated = await generate(build_reply_context(assistant.system_prompt, text), platform.lower())
            except Exception as exc:
                logger.warning(
                    "AI reply generation raised",
                    extra={"context": {"rule_id": str(rule.id), "error": str(exc)}},
                )
                generated = None
            if generated and generated.strip():
                return AutoReply(text=generated.strip(), ai_generated=True, rule_id=rule.id)
            return None
        logger.info(
            "AI rule has no active assistant, using static response",
            extra={"context": {"rule_id": str(rule.id), "assistant_id": str(rule.assistant_id)}},
        )

    if rule.response and rule.response.strip():
        return AutoReply(text=rule.response, ai_generated=False, rule_id=rule.id)
    return None


async def resolve_auto_reply(
    db: Session,
    platform: str,
    text: str,
    *,
    now: Optional[datetime] = None,
    generate: ReplyGenerator = generate_reply,
) -> Optional[AutoReply]:
    """First matching rule by descending priority decides the reply, or that there is none."""
    rules = load_active_rules(db, platform)
    rule = find_matching_rule(rules, text, now)
    if rule is None:
        logger.debug(f"No auto-reply rule matched for {platform}")
        return None

    reply = await build_rule_reply(db, rule, platform, text, generate=generate)
    logger.info(
        "Auto-reply rule matched",
        extra={
            "context": {
                "rule_id": str(rule.id),
                "rule_name": rule.name,
                "platform": platform,
                "use_ai": bool(rule.use_ai),
                "has_reply": reply is not None,
            }
        },
    )
    return reply
