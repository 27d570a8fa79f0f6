import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, Uuid

from inbox_api.database import Base


class InstagramAccount(Base):
    __tablename__ = "instagram_accounts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    ig_user_id = Column(Text, nullable=False, unique=True)
    page_id = Column(Text)
    username = Column(Text)
    access_token = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True))
