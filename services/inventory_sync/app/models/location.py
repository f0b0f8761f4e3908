from sqlalchemy import Column, Text, DateTime, Uuid
from sqlalchemy.sql import func
import uuid
from app.db.database import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=False)
    address = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
