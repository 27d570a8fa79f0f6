import uuid

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid

from inbox_api.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text)
    email = Column(Text, unique=True)
    role = Column(Text, default="agent")  # admin, manager, agent
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True))
