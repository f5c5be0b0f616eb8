import datetime
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel

from walletsync.domain.transaction.entity import Transaction, TransactionSync


class TransactionFilters(BaseModel):
    date_from: Optional[datetime.datetime] = None
    date_to: Optional[datetime.datetime] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_rail: Optional[str] = None


class TransactionRepository(ABC):
    @abstractmethod
    async def transaction_exists(self, bridge_transaction_id: str) -> bool:
        pass

    @abstractmethod
    async def insert_transaction(self, tx: Transaction) -> bool:
        """Insert unless the bridge_transaction_id is taken. Returns True if a row was written."""
        pass

    @abstractmethod
    async def count_transactions(self, wallet_id: str, filters: Optional[TransactionFilters] = None) -> int:
        pass

    @abstractmethod
    async def list_transactions(
        self, wallet_id: str, filters: Optional[TransactionFilters] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Transaction], int]:
        pass


class TransactionSyncRepository(ABC):
    @abstractmethod
    async def record_sync(self, entry: TransactionSync) -> None:
        pass

    @abstractmethod
    async def get_latest_sync(self, wallet_id: str) -> Optional[TransactionSync]:
        pass

    @abstractmethod
    async def get_latest_successful_sync(self, wallet_id: str) -> Optional[TransactionSync]:
        pass
