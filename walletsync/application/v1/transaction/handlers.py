from http import HTTPStatus
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from walletsync.application.v1.transaction.schemas import WalletTransactionHistoryResponse
from walletsync.application.v1.transaction.usecase import (
    GetWalletTransactionHistory,
    SyncWalletTransactions,
)
from walletsync.domain.exceptions import WalletNotFoundError
from walletsync.domain.transaction.repository import TransactionFilters
from walletsync.shared.monitoring.logging import get_logger

logger = get_logger(__name__)


async def get_wallet_history_handler(
    user_id: str,
    wallet_id: str,
    page: int,
    limit: int,
    filters: Optional[TransactionFilters],
    usecase: GetWalletTransactionHistory,
) -> WalletTransactionHistoryResponse:
    try:
        return await usecase.execute(user_id, wallet_id, page=page, limit=limit, filters=filters)
    except WalletNotFoundError as e:
        raise HTTPException(HTTPStatus.NOT_FOUND, str(e))


async def sync_wallet_transactions_handler(
    user_id: str, wallet_id: str, usecase: SyncWalletTransactions
):
    try:
        return await usecase.execute(user_id, wallet_id)
    except WalletNotFoundError as e:
        raise HTTPException(HTTPStatus.NOT_FOUND, str(e))
    except Exception as e:
        message = str(e) or type(e).__name__
        logger.error(f"Wallet sync request failed - Wallet: {wallet_id}, Error: {message}")
        return JSONResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Failed to sync wallet transactions",
                "details": message,
                "message": message,
            },
        )
