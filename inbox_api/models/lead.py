import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text, Uuid

from inbox_api.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    phone = Column(Text)
    email = Column(Text)
    source = Column(Text)  # WHATSAPP, INSTAGRAM_DM, WEBSITE, IMPORT, ...
    status = Column(Text, nullable=False, default="new")
    priority = Column(Text, default="MEDIUM")  # LOW, MEDIUM, HIGH
    assigned_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    budget = Column(Numeric(14, 2))
    score = Column(Integer, default=0)
    campaign_id = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
