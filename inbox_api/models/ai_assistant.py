import uuid

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid

from inbox_api.database import Base


class AIAssistant(Base):
    __tablename__ = "ai_assistants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    system_prompt = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True))
