import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from walletsync.domain.transaction.entity import SyncStatus


class SyncResult(BaseModel):
    success: bool
    synced_count: int
    new_transactions: int
    total_transactions: int
    last_sync_at: datetime.datetime
    message: str


class TransactionResponse(BaseModel):
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


class WalletDetail(BaseModel):
    id: str
    profile_id: str
    wallet_tag: str
    is_active: bool
    bridge_wallet_id: str
    chain: str
    address: str
    bridge_tags: List[str]
    bridge_created_at: Optional[datetime.datetime] = None
    bridge_updated_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    transaction_count: int = 0
    last_transaction_at: Optional[datetime.datetime] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "Pagination":
        total_pages = -(-total_count // limit) if total_count else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            limit=limit,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class SyncInfo(BaseModel):
    last_sync_at: datetime.datetime
    sync_status: SyncStatus
    last_sync_transaction_count: int
    new_transactions_found: int
    error_message: Optional[str] = None
    last_processed_bridge_created_at: Optional[datetime.datetime] = None


class WalletTransactionHistoryResponse(BaseModel):
    wallet: WalletDetail
    transactions: List[TransactionResponse]
    pagination: Pagination
    sync_info: Optional[SyncInfo] = None
