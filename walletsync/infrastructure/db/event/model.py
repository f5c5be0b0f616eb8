from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from walletsync.infrastructure.db.base import Base


class Event(Base):
    __tablename__ = "events"
    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    module = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)
