import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.sql import func

from inbox_api.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    action = Column(Text, nullable=False)
    details = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
