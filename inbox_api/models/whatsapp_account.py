import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, Uuid

from inbox_api.database import Base


class WhatsappAccount(Base):
    __tablename__ = "whatsapp_accounts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    phone_number_id = Column(Text, nullable=False, unique=True)
    display_phone_number = Column(Text)
    access_token = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True))
