import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid

from inbox_api.database import Base


class WhatsappMessage(Base):
    """Platform-shaped copy of a WhatsApp message, read by the WhatsApp inbox screens."""

    __tablename__ = "whatsapp_messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    whatsapp_account_id = Column(Uuid(as_uuid=True), ForeignKey("whatsapp_accounts.id"))
    lead_id = Column(Uuid(as_uuid=True), ForeignKey("leads.id"))
    sender_id = Column(Text, nullable=False)
    recipient_id = Column(Text, nullable=False)
    phone = Column(Text)
    message = Column(Text, nullable=False, default="")
    external_id = Column(Text)
    direction = Column(Text, nullable=False)  # INBOUND, OUTBOUND
    sent_at = Column(DateTime(timezone=True), nullable=False)
