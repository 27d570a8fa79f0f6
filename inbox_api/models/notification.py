import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, Uuid

from inbox_api.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    lead_id = Column(Uuid(as_uuid=True), ForeignKey("leads.id"))
    type = Column(Text, nullable=False)  # MESSAGE, ...
    title = Column(Text, nullable=False)
    body = Column(Text)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
