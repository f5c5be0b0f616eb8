from sqlalchemy import ARRAY, Boolean, Column, DateTime, ForeignKey, String

from walletsync.infrastructure.db.base import Base


class Wallet(Base):
    __tablename__ = "wallets"
    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    wallet_tag = Column(String, nullable=False, default="general_use")
    is_active = Column(Boolean, nullable=False, default=True)
    bridge_wallet_id = Column(String, nullable=False, unique=True)
    chain = Column(String, nullable=False)
    address = Column(String, nullable=False)
    bridge_tags = Column(ARRAY(String), nullable=False, default=list)
    bridge_created_at = Column(DateTime(timezone=True), nullable=True)
    bridge_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
