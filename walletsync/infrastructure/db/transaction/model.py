from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB

from walletsync.infrastructure.db.base import Base


class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(String, primary_key=True)
    # Derived from wallet id + provider created_at + amount; the de-duplication key
    bridge_transaction_id = Column(String, nullable=False, unique=True)
    wallet_id = Column(String, ForeignKey("wallets.id"), nullable=False)
    amount = Column(Text, nullable=False)
    developer_fee = Column(Text, nullable=True)
    customer_id = Column(String, nullable=False)
    source_payment_rail = Column(String, nullable=True)
    source_currency = Column(String, nullable=True)
    destination_payment_rail = Column(String, nullable=True)
    destination_currency = Column(String, nullable=True)
    bridge_created_at = Column(DateTime(timezone=True), nullable=False)
    bridge_updated_at = Column(DateTime(timezone=True), nullable=False)
    bridge_raw_data = Column(JSONB, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_transactions_wallet_created", "wallet_id", "bridge_created_at"),
    )


class TransactionSync(Base):
    __tablename__ = "transaction_syncs"
    id = Column(String, primary_key=True)
    wallet_id = Column(String, ForeignKey("wallets.id"), nullable=False)
    last_sync_at = Column(DateTime(timezone=True), nullable=False)
    last_sync_transaction_count = Column(Integer, nullable=False, default=0)
    new_transactions_found = Column(Integer, nullable=False, default=0)
    sync_status = Column(String, nullable=False)
    error_message = Column(Text, nullable=True)
    last_processed_bridge_created_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_transaction_syncs_wallet_last_sync", "wallet_id", "last_sync_at"),
    )
