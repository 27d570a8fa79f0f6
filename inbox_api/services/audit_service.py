from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from inbox_api.logging_config import get_logger
from inbox_api.models import AuditLog

logger = get_logger("audit_service")


def log_audit(
    db: Session,
    action: str,
    details: Optional[str] = None,
    *,
    entity_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
) -> bool:
    """Write an audit entry. Failures are logged and swallowed."""
    if entity_id:
        details = f"{details or ''} [Entity: {entity_id}]"
    try:
        db.add(AuditLog(action=action, details=details, user_id=user_id))
        db.commit()
        return True
    except Exception as exc:
        db.rollback()
        logger.warning(
            "Failed to write audit log",
            extra={"context": {"action": action, "entity_id": entity_id, "error": str(exc)}},
        )
        return False
