from http import HTTPStatus

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from walletsync.application.v1.wallet.schemas import (
    UserWalletsResponse,
    WalletCreationRequest,
    WalletCreationResponse,
    WalletSyncRequest,
    WalletSyncResponse,
)
from walletsync.application.v1.wallet.usecase import (
    CreateWalletUseCase,
    GetUserWalletsUseCase,
    SyncCustomerWalletsUseCase,
)
from walletsync.domain.exceptions import (
    BridgeAPIError,
    InvalidRequestError,
    ProfileNotFoundError,
)
from walletsync.shared.monitoring.logging import get_logger

logger = get_logger(__name__)


async def create_wallet_handler(
    user_id: str, body: WalletCreationRequest, created_by: str, usecase: CreateWalletUseCase
) -> WalletCreationResponse:
    try:
        wallet = await usecase.execute(user_id, body.chain, body.wallet_tag, created_by)
    except ProfileNotFoundError as e:
        raise HTTPException(HTTPStatus.NOT_FOUND, str(e))
    except InvalidRequestError as e:
        raise HTTPException(HTTPStatus.BAD_REQUEST, str(e))
    except BridgeAPIError as e:
        logger.error(f"Wallet creation failed at provider - User: {user_id}, Error: {str(e)}")
        raise HTTPException(HTTPStatus.BAD_GATEWAY, f"Failed to create wallet in Bridge API: {str(e)}")

    return WalletCreationResponse(
        success=True,
        wallet=wallet,
        message=f"Wallet created successfully for {body.chain.value} blockchain",
    )


async def sync_wallets_handler(body: WalletSyncRequest, usecase: SyncCustomerWalletsUseCase):
    try:
        return await usecase.execute(body.profile_id, body.bridge_customer_id)
    except ProfileNotFoundError as e:
        raise HTTPException(HTTPStatus.NOT_FOUND, str(e))
    except InvalidRequestError as e:
        raise HTTPException(HTTPStatus.BAD_REQUEST, str(e))
    except Exception as e:
        status = HTTPStatus.BAD_GATEWAY if isinstance(e, BridgeAPIError) else HTTPStatus.INTERNAL_SERVER_ERROR
        logger.error(f"Wallet sync failed - Profile: {body.profile_id}, Error: {str(e)}")
        failure = WalletSyncResponse(success=False, message=str(e) or "Unknown error occurred")
        return JSONResponse(status_code=status, content=failure.model_dump())


async def get_user_wallets_handler(user_id: str, usecase: GetUserWalletsUseCase) -> UserWalletsResponse:
    try:
        return await usecase.execute(user_id)
    except ProfileNotFoundError as e:
        raise HTTPException(HTTPStatus.NOT_FOUND, str(e))
