import time
import uuid
from typing import Iterable, List, Optional, Tuple

from walletsync.application.v1.transaction.schemas import Pagination
from walletsync.application.v1.wallet.schemas import (
    RecentActivity,
    UsersWithWalletsResponse,
    UserWalletsResponse,
    UserWithWallets,
    WalletStatsResponse,
    WalletSyncResponse,
)
from walletsync.domain.event.entity import Event
from walletsync.domain.event.repository import EventRepository
from walletsync.domain.exceptions import InvalidRequestError, ProfileNotFoundError
from walletsync.domain.ledger.entity import BridgeWallet
from walletsync.domain.ledger.repository import LedgerProvider
from walletsync.domain.profile.entity import Profile
from walletsync.domain.profile.repository import ProfileFilters, ProfileRepository
from walletsync.domain.wallet.entity import SUPPORTED_CHAINS, Wallet, WalletChain, WalletTag
from walletsync.domain.wallet.repository import WalletRepository
from walletsync.shared.monitoring.logging import LoggerMixin
from walletsync.shared.monitoring.metrics import record_wallet_created, record_wallets_synced
from walletsync.shared.utils.validators import parse_timestamp, utcnow

P2P_KEYWORDS = ("p2p", "peer", "trading", "exchange")


def determine_wallet_tag(bridge_tags: Iterable[str]) -> WalletTag:
    """p2p when any provider tag mentions a trading keyword, else general_use."""
    for tag in bridge_tags:
        lowered = tag.lower()
        if any(keyword in lowered for keyword in P2P_KEYWORDS):
            return WalletTag.P2P
    return WalletTag.GENERAL_USE


def wallet_from_bridge(
    bridge_wallet: BridgeWallet,
    profile_id: str,
    wallet_tag: WalletTag,
    existing: Optional[Wallet] = None,
) -> Wallet:
    now = utcnow()
    return Wallet(
        id=existing.id if existing else str(uuid.uuid4()),
        profile_id=profile_id,
        wallet_tag=wallet_tag,
        is_active=True,
        bridge_wallet_id=bridge_wallet.id,
        chain=WalletChain(bridge_wallet.chain),
        address=bridge_wallet.address,
        bridge_tags=list(bridge_wallet.tags),
        bridge_created_at=parse_timestamp(bridge_wallet.created_at),
        bridge_updated_at=parse_timestamp(bridge_wallet.updated_at),
        created_at=existing.created_at if existing else now,
        updated_at=now,
    )


# --- Use Cases ---
class CreateWalletUseCase(LoggerMixin):
    def __init__(
        self,
        ledger: LedgerProvider,
        profile_repo: ProfileRepository,
        wallet_repo: WalletRepository,
        event_repo: EventRepository,
    ):
        self.ledger = ledger
        self.profile_repo = profile_repo
        self.wallet_repo = wallet_repo
        self.event_repo = event_repo

    async def execute(
        self, user_id: str, chain: WalletChain, wallet_tag: WalletTag, created_by: str
    ) -> Wallet:
        """
        Provision a custody wallet for the user and mirror it locally.

        The user must have completed KYC, which is what gives them a
        provider customer id.
        """
        profile = await self.profile_repo.get_profile_by_user_id(user_id)
        if not profile:
            raise ProfileNotFoundError("User not found")
        if not profile.bridge_customer_id:
            raise InvalidRequestError(
                "User does not have a Bridge customer ID. KYC process must be completed first."
            )

        start_time = time.time()
        self.logger.info(
            f"Creating wallet - User: {user_id}, Chain: {chain.value}, Tag: {wallet_tag.value}"
        )

        bridge_wallet = await self.ledger.create_wallet(profile.bridge_customer_id, chain.value)
        now = utcnow()
        wallet = Wallet(
            id=str(uuid.uuid4()),
            profile_id=profile.id,
            wallet_tag=wallet_tag,
            is_active=True,
            bridge_wallet_id=bridge_wallet.id,
            chain=chain,
            address=bridge_wallet.address,
            bridge_tags=list(bridge_wallet.tags),
            bridge_created_at=parse_timestamp(bridge_wallet.created_at),
            bridge_updated_at=parse_timestamp(bridge_wallet.updated_at),
            created_at=now,
            updated_at=now,
        )
        await self.wallet_repo.save_wallet(wallet)

        await self.event_repo.record_event(
            Event(
                id=str(uuid.uuid4()),
                type="USER_WALLET_CREATED",
                module="WALLET",
                description=f"Wallet created for {chain.value} blockchain",
                profile_id=profile.id,
                metadata={
                    "wallet_id": wallet.id,
                    "bridge_wallet_id": bridge_wallet.id,
                    "chain": chain.value,
                    "wallet_tag": wallet_tag.value,
                    "address": bridge_wallet.address,
                    "created_by": created_by,
                },
                created_at=now,
            )
        )

        record_wallet_created(chain.value)
        self.logger.info(
            f"Wallet created - User: {user_id}, Wallet: {wallet.id}, Bridge wallet: {bridge_wallet.id}, "
            f"Duration: {time.time() - start_time:.3f}s"
        )
        return wallet


class SyncCustomerWalletsUseCase(LoggerMixin):
    def __init__(
        self, ledger: LedgerProvider, profile_repo: ProfileRepository, wallet_repo: WalletRepository
    ):
        self.ledger = ledger
        self.profile_repo = profile_repo
        self.wallet_repo = wallet_repo

    async def execute(self, profile_id: str, bridge_customer_id: str) -> WalletSyncResponse:
        profile = await self.profile_repo.get_profile_by_id(profile_id)
        if not profile:
            raise ProfileNotFoundError("Profile not found")
        if profile.bridge_customer_id != bridge_customer_id:
            raise InvalidRequestError("Bridge customer ID mismatch")

        synced, new_wallets, updated_wallets = await self.sync_profile(profile)
        return WalletSyncResponse(
            success=True,
            synced_count=synced,
            new_wallets=new_wallets,
            updated_wallets=updated_wallets,
            message=f"Successfully synced {synced} wallets ({new_wallets} new, {updated_wallets} updated)",
        )

    async def sync_profile(self, profile: Profile) -> Tuple[int, int, int]:
        """Upsert the customer's provider wallets on supported chains. Returns (synced, new, updated)."""
        bridge_wallets = await self.ledger.list_customer_wallets(profile.bridge_customer_id)
        supported = [w for w in bridge_wallets.data if w.chain in SUPPORTED_CHAINS]
        self.logger.info(
            f"Syncing wallets - Profile: {profile.id}, Provider wallets: {bridge_wallets.count}, "
            f"Supported: {len(supported)}"
        )

        new_wallets = 0
        updated_wallets = 0
        for bridge_wallet in supported:
            tag = determine_wallet_tag(bridge_wallet.tags)
            existing = await self.wallet_repo.get_wallet_by_bridge_id(bridge_wallet.id)
            wallet = wallet_from_bridge(bridge_wallet, profile.id, tag, existing)
            if existing:
                await self.wallet_repo.update_wallet(wallet)
                updated_wallets += 1
            else:
                await self.wallet_repo.save_wallet(wallet)
                new_wallets += 1

        record_wallets_synced(new=new_wallets, updated=updated_wallets)
        return len(supported), new_wallets, updated_wallets


class GetUserWalletsUseCase:
    def __init__(self, profile_repo: ProfileRepository, wallet_repo: WalletRepository):
        self.profile_repo = profile_repo
        self.wallet_repo = wallet_repo

    async def execute(self, user_id: str) -> UserWalletsResponse:
        profile = await self.profile_repo.get_profile_by_user_id(user_id)
        if not profile:
            raise ProfileNotFoundError("User not found")
        wallets = await self.wallet_repo.list_wallets_by_profile(profile.id)
        return UserWalletsResponse(user=UserWithWallets.from_profile(profile, wallets), wallets=wallets)


class ListUsersWithWalletsUseCase(LoggerMixin):
    def __init__(
        self,
        ledger: LedgerProvider,
        profile_repo: ProfileRepository,
        wallet_repo: WalletRepository,
        sync_usecase: SyncCustomerWalletsUseCase,
    ):
        self.ledger = ledger
        self.profile_repo = profile_repo
        self.wallet_repo = wallet_repo
        self.sync_usecase = sync_usecase

    async def execute(
        self, filters: ProfileFilters, page: int = 1, limit: int = 10, include_wallets: bool = False
    ) -> UsersWithWalletsResponse:
        offset = (page - 1) * limit
        profiles, total_count = await self.profile_repo.list_user_profiles(filters, limit, offset)

        users: List[UserWithWallets] = []
        if include_wallets:
            wallets_by_profile = await self._load_wallets(profiles)
            if self.ledger.is_configured and await self._auto_sync(profiles, wallets_by_profile):
                profiles, total_count = await self.profile_repo.list_user_profiles(filters, limit, offset)
                wallets_by_profile = await self._load_wallets(profiles)
            users = [UserWithWallets.from_profile(p, wallets_by_profile[p.id]) for p in profiles]
        else:
            users = [UserWithWallets.from_profile(p) for p in profiles]

        return UsersWithWalletsResponse(
            users=users, pagination=Pagination.build(page, limit, total_count)
        )

    async def _load_wallets(self, profiles: List[Profile]):
        return {p.id: await self.wallet_repo.list_wallets_by_profile(p.id) for p in profiles}

    async def _auto_sync(self, profiles: List[Profile], wallets_by_profile) -> bool:
        """Mirror provider wallets for listed users who have none yet. Failures are only logged."""
        pending = [p for p in profiles if not wallets_by_profile[p.id] and p.bridge_customer_id]
        if not pending:
            return False

        self.logger.info(f"Auto-syncing wallets for {len(pending)} users")
        synced_any = False
        for profile in pending:
            try:
                _, new_wallets, _ = await self.sync_usecase.sync_profile(profile)
                synced_any = synced_any or new_wallets > 0
            except Exception as e:
                self.logger.error(
                    f"Auto-sync failed - Profile: {profile.id}, Customer: {profile.bridge_customer_id}, Error: {str(e)}"
                )
        return synced_any


class GetWalletStatsUseCase(LoggerMixin):
    def __init__(self, wallet_repo: WalletRepository):
        self.wallet_repo = wallet_repo

    async def execute(self) -> WalletStatsResponse:
        today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        stats = await self.wallet_repo.get_wallet_stats(today)

        return WalletStatsResponse(
            total_users_with_wallets=stats.total_users_with_wallets,
            total_wallets=stats.total_wallets,
            wallets_by_chain=stats.wallets_by_chain,
            wallets_by_tag=stats.wallets_by_tag,
            recent_activity=RecentActivity(
                new_wallets_today=stats.new_wallets_today,
                active_chains=stats.active_chains,
                users_with_multiple_wallets=stats.users_with_multiple_wallets,
            ),
        )
