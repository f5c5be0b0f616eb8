from abc import ABC, abstractmethod
from typing import Optional

from walletsync.domain.ledger.entity import (
    BridgeTransactionHistory,
    BridgeWallet,
    BridgeWalletList,
)


class LedgerProvider(ABC):
    @property
    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    async def get_wallet_history(
        self, bridge_wallet_id: str, limit: int = 100, updated_after_ms: Optional[int] = None
    ) -> BridgeTransactionHistory:
        pass

    @abstractmethod
    async def list_customer_wallets(self, customer_id: str) -> BridgeWalletList:
        pass

    @abstractmethod
    async def create_wallet(self, customer_id: str, chain: str) -> BridgeWallet:
        pass
