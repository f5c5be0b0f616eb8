from sqlalchemy import Column, DateTime, String

from walletsync.infrastructure.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="USER")
    status = Column(String, nullable=False, default="active")
    bridge_customer_id = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
