import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text, Uuid

from inbox_api.database import Base


class AutoReplyRule(Base):
    __tablename__ = "auto_reply_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    name = Column(Text)
    platform = Column(Text, nullable=False, default="ALL")  # ALL, INSTAGRAM, WHATSAPP
    keyword = Column(Text, nullable=False)  # "*" matches everything
    response = Column(Text)
    use_ai = Column(Boolean, nullable=False, default=False)
    assistant_id = Column(Uuid(as_uuid=True), ForeignKey("ai_assistants.id"))
    is_active = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)
    time_restriction_enabled = Column(Boolean, nullable=False, default=False)
    start_time = Column(Text)  # HH:MM
    end_time = Column(Text)  # HH:MM
    timezone = Column(Text)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))
