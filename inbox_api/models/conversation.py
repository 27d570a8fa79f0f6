import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import relationship

from inbox_api.database import Base


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        # One ACTIVE conversation per channel; concurrent first contacts collide here.
        Index(
            "uq_conversations_active_channel",
            "channel_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    channel_id = Column(Uuid(as_uuid=True), ForeignKey("channels.id"), nullable=False)
    contact_id = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="ACTIVE")  # ACTIVE, ARCHIVED, CLOSED
    last_message_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False)

    channel = relationship("Channel", back_populates="conversations")
    messages = relationship("Message", back_populates="conversation")
