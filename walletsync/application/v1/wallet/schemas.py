import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from walletsync.application.v1.transaction.schemas import Pagination
from walletsync.domain.profile.entity import Profile
from walletsync.domain.wallet.entity import Wallet, WalletChain, WalletTag


# POST /api/wallets/{user_id}/create
class WalletCreationRequest(BaseModel):
    chain: WalletChain
    wallet_tag: WalletTag = WalletTag.GENERAL_USE


class WalletCreationResponse(BaseModel):
    success: bool
    wallet: Wallet
    message: str


# POST /api/wallets/sync
class WalletSyncRequest(BaseModel):
    profile_id: str = Field(..., min_length=1)
    bridge_customer_id: str = Field(..., min_length=1)


class WalletSyncResponse(BaseModel):
    success: bool
    synced_count: int = 0
    new_wallets: int = 0
    updated_wallets: int = 0
    message: str


# GET /api/wallets, GET /api/wallets/{user_id}
class UserWithWallets(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    status: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    wallets: Optional[List[Wallet]] = None
    wallets_count: Optional[int] = None

    @classmethod
    def from_profile(cls, profile: Profile, wallets: Optional[List[Wallet]] = None) -> "UserWithWallets":
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            role=profile.role.value,
            status=profile.status,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
            wallets=wallets,
            wallets_count=len(wallets) if wallets is not None else None,
        )


class UserWalletsResponse(BaseModel):
    user: UserWithWallets
    wallets: List[Wallet]


class UsersWithWalletsResponse(BaseModel):
    users: List[UserWithWallets]
    pagination: Pagination


# GET /api/wallets/stats
class RecentActivity(BaseModel):
    new_wallets_today: int
    active_chains: int
    users_with_multiple_wallets: int


class WalletStatsResponse(BaseModel):
    total_users_with_wallets: int
    total_wallets: int
    wallets_by_chain: Dict[str, int]
    wallets_by_tag: Dict[str, int]
    recent_activity: RecentActivity
