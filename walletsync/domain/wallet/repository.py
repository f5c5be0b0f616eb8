import datetime
from abc import ABC, abstractmethod
from typing import List, Optional
from walletsync.domain.wallet.entity import Wallet, WalletStats

class WalletRepository(ABC):
    @abstractmethod
    async def save_wallet(self, wallet: Wallet) -> None:
        pass

    @abstractmethod
    async def update_wallet(self, wallet: Wallet) -> None:
        pass

    @abstractmethod
    async def get_wallet_by_bridge_id(self, bridge_wallet_id: str) -> Optional[Wallet]:
        pass

    @abstractmethod
    async def get_wallet_for_user(self, wallet_id: str, user_id: str) -> Optional[Wallet]:
        pass

    @abstractmethod
    async def list_wallets_by_profile(self, profile_id: str, active_only: bool = True) -> List[Wallet]:
        pass

    @abstractmethod
    async def get_wallet_stats(self, since: datetime.datetime) -> WalletStats:
        """Aggregate counts over active wallets; new_wallets_today counts rows created at or after since."""
        pass
