from enum import Enum
from typing import Dict, List, Optional
import datetime
from pydantic import BaseModel, Field


class WalletChain(str, Enum):
    SOLANA = "solana"
    BASE = "base"


class WalletTag(str, Enum):
    GENERAL_USE = "general_use"
    P2P = "p2p"


SUPPORTED_CHAINS = frozenset(chain.value for chain in WalletChain)


class Wallet(BaseModel):
    id: str
    profile_id: str
    wallet_tag: WalletTag = WalletTag.GENERAL_USE
    is_active: bool = True
    bridge_wallet_id: str = Field(..., description="Wallet id at the custody provider")
    chain: WalletChain
    address: str
    bridge_tags: List[str] = Field(default_factory=list)
    bridge_created_at: Optional[datetime.datetime] = None
    bridge_updated_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class WalletStats(BaseModel):
    total_wallets: int = 0
    total_users_with_wallets: int = 0
    wallets_by_chain: Dict[str, int] = Field(default_factory=dict)
    wallets_by_tag: Dict[str, int] = Field(
        default_factory=lambda: {tag.value: 0 for tag in WalletTag}
    )
    new_wallets_today: int = 0
    users_with_multiple_wallets: int = 0

    @property
    def active_chains(self) -> int:
        return len(self.wallets_by_chain)
