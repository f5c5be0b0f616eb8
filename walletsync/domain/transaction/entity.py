import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class Transaction(BaseModel):
    id: str
    bridge_transaction_id: str
    wallet_id: str
    amount: str
    developer_fee: Optional[str] = None
    customer_id: str
    source_payment_rail: Optional[str] = None
    source_currency: Optional[str] = None
    destination_payment_rail: Optional[str] = None
    destination_currency: Optional[str] = None
    bridge_created_at: datetime.datetime
    bridge_updated_at: datetime.datetime
    bridge_raw_data: Dict[str, Any]
    created_at: datetime.datetime


class SyncStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class TransactionSync(BaseModel):
    """One reconciliation attempt for a wallet. Rows are append-only."""

    id: str
    wallet_id: str
    last_sync_at: datetime.datetime
    last_sync_transaction_count: int = 0
    new_transactions_found: int = 0
    sync_status: SyncStatus
    error_message: Optional[str] = None
    # Watermark: newest provider created_at processed so far
    last_processed_bridge_created_at: Optional[datetime.datetime] = None
