import datetime
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from walletsync.application.v1.auth import require_superadmin
from walletsync.application.v1.transaction.handlers import (
    get_wallet_history_handler,
    sync_wallet_transactions_handler,
)
from walletsync.application.v1.transaction.schemas import (
    SyncResult,
    WalletTransactionHistoryResponse,
)
from walletsync.application.v1.transaction.usecase import (
    GetWalletTransactionHistory,
    SyncWalletTransactions,
)
from walletsync.domain.transaction.repository import TransactionFilters
from walletsync.shared.utils.validators import is_valid_amount, parse_amount

router = APIRouter(
    prefix="/api/wallets",
    tags=["Transaction"],
    dependencies=[Depends(require_superadmin)],
)


def get_history_usecase(request: Request) -> GetWalletTransactionHistory:
    state = request.app.state
    return GetWalletTransactionHistory(state.wallet_repo, state.transaction_repo, state.sync_repo)


def get_sync_usecase(request: Request) -> SyncWalletTransactions:
    state = request.app.state
    return SyncWalletTransactions(
        state.ledger,
        state.wallet_repo,
        state.transaction_repo,
        state.sync_repo,
        state.sync_locks,
        page_size=state.config.sync_page_size,
    )


def _amount_bound(name: str, value: Optional[str]):
    if value is None or value == "":
        return None
    if not is_valid_amount(value):
        raise HTTPException(HTTPStatus.BAD_REQUEST, f"Invalid {name}: {value}")
    return parse_amount(value)


def get_transaction_filters(
    date_from: Optional[datetime.datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime.datetime] = Query(None, alias="dateTo"),
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    currency: Optional[str] = Query(None),
    payment_rail: Optional[str] = Query(None, alias="paymentRail"),
) -> TransactionFilters:
    return TransactionFilters(
        date_from=date_from,
        date_to=date_to,
        min_amount=_amount_bound("minAmount", min_amount),
        max_amount=_amount_bound("maxAmount", max_amount),
        currency=currency or None,
        payment_rail=payment_rail or None,
    )


@router.get("/{user_id}/{wallet_id}", response_model=WalletTransactionHistoryResponse)
async def get_wallet_transactions(
    user_id: str,
    wallet_id: str,
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(20, ge=1, le=100, description="Transactions per page"),
    filters: TransactionFilters = Depends(get_transaction_filters),
    usecase: GetWalletTransactionHistory = Depends(get_history_usecase),
):
    return await get_wallet_history_handler(user_id, wallet_id, page, limit, filters, usecase)


@router.post("/{user_id}/{wallet_id}", response_model=SyncResult)
async def sync_wallet_transactions(
    user_id: str,
    wallet_id: str,
    usecase: SyncWalletTransactions = Depends(get_sync_usecase),
):
    """Reconcile the wallet against the provider now and report what was stored."""
    return await sync_wallet_transactions_handler(user_id, wallet_id, usecase)
