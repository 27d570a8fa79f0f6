import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from inbox_api.database import Base


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "external_id", name="uq_messages_conversation_external_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False)
    lead_id = Column(Uuid(as_uuid=True), ForeignKey("leads.id"))
    external_id = Column(Text, nullable=False)
    direction = Column(Text, nullable=False)  # INBOUND, OUTBOUND
    source = Column(Text, nullable=False)  # INSTAGRAM, WHATSAPP
    content = Column(Text, nullable=False, default="")
    ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
