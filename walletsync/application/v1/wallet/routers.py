from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from walletsync.application.v1.auth import require_superadmin
from walletsync.application.v1.wallet.handlers import (
    create_wallet_handler,
    get_user_wallets_handler,
    sync_wallets_handler,
)
from walletsync.application.v1.wallet.schemas import (
    UsersWithWalletsResponse,
    UserWalletsResponse,
    WalletCreationRequest,
    WalletCreationResponse,
    WalletStatsResponse,
    WalletSyncRequest,
    WalletSyncResponse,
)
from walletsync.application.v1.wallet.usecase import (
    CreateWalletUseCase,
    GetUserWalletsUseCase,
    GetWalletStatsUseCase,
    ListUsersWithWalletsUseCase,
    SyncCustomerWalletsUseCase,
)
from walletsync.domain.profile.entity import Profile
from walletsync.domain.profile.repository import ProfileFilters

# Registered before the transaction router so /stats and /{user_id}/create
# are not captured by /{user_id}/{wallet_id}
router = APIRouter(
    prefix="/api/wallets",
    tags=["Wallet"],
    dependencies=[Depends(require_superadmin)],
)


def get_create_wallet_usecase(request: Request) -> CreateWalletUseCase:
    state = request.app.state
    return CreateWalletUseCase(state.ledger, state.profile_repo, state.wallet_repo, state.event_repo)


def get_sync_wallets_usecase(request: Request) -> SyncCustomerWalletsUseCase:
    state = request.app.state
    return SyncCustomerWalletsUseCase(state.ledger, state.profile_repo, state.wallet_repo)


def get_list_users_usecase(
    request: Request, sync_usecase: SyncCustomerWalletsUseCase = Depends(get_sync_wallets_usecase)
) -> ListUsersWithWalletsUseCase:
    state = request.app.state
    return ListUsersWithWalletsUseCase(state.ledger, state.profile_repo, state.wallet_repo, sync_usecase)


@router.get("/stats", response_model=WalletStatsResponse)
async def get_wallet_stats(request: Request):
    return await GetWalletStatsUseCase(request.app.state.wallet_repo).execute()


@router.post("/sync", response_model=WalletSyncResponse)
async def sync_wallets(
    body: WalletSyncRequest,
    usecase: SyncCustomerWalletsUseCase = Depends(get_sync_wallets_usecase),
):
    """Mirror the customer's provider wallets into the local database."""
    return await sync_wallets_handler(body, usecase)


@router.get("", response_model=UsersWithWalletsResponse)
async def list_users_with_wallets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Matches first name, last name or email"),
    has_wallets: Optional[bool] = Query(None),
    chain: Optional[str] = Query(None),
    wallet_tag: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    include_wallets: bool = Query(False),
    usecase: ListUsersWithWalletsUseCase = Depends(get_list_users_usecase),
):
    filters = ProfileFilters(
        search=search or None,
        has_wallets=has_wallets,
        chain=chain,
        wallet_tag=wallet_tag,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await usecase.execute(filters, page=page, limit=limit, include_wallets=include_wallets)


@router.post("/{user_id}/create", response_model=WalletCreationResponse)
async def create_wallet(
    user_id: str,
    body: WalletCreationRequest,
    caller: Profile = Depends(require_superadmin),
    usecase: CreateWalletUseCase = Depends(get_create_wallet_usecase),
):
    return await create_wallet_handler(user_id, body, caller.user_id, usecase)


@router.get("/{user_id}", response_model=UserWalletsResponse)
async def get_user_wallets(user_id: str, request: Request):
    state = request.app.state
    return await get_user_wallets_handler(user_id, GetUserWalletsUseCase(state.profile_repo, state.wallet_repo))
