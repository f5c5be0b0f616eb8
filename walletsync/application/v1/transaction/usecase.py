import time
import uuid
from typing import Optional

from walletsync.application.v1.transaction.mapper import (
    compute_watermark,
    derive_bridge_transaction_id,
    map_bridge_transaction,
)
from walletsync.application.v1.transaction.schemas import (
    Pagination,
    SyncInfo,
    SyncResult,
    TransactionResponse,
    WalletDetail,
    WalletTransactionHistoryResponse,
)
from walletsync.domain.exceptions import WalletNotFoundError
from walletsync.domain.ledger.repository import LedgerProvider
from walletsync.domain.transaction.entity import SyncStatus, TransactionSync
from walletsync.domain.transaction.repository import (
    TransactionFilters,
    TransactionRepository,
    TransactionSyncRepository,
)
from walletsync.domain.wallet.entity import Wallet
from walletsync.domain.wallet.repository import WalletRepository

# Monitoring imports
from walletsync.shared.monitoring.logging import LoggerMixin, log_sync_operation
from walletsync.shared.monitoring.metrics import (
    record_sync_conflict,
    record_sync_run,
    track_time,
    transaction_history_query_duration_seconds,
)
from walletsync.shared.utils.keyed_lock import KeyedAsyncLock
from walletsync.shared.utils.validators import to_epoch_ms, utcnow


class SyncWalletTransactions(LoggerMixin):
    """
    Pull a wallet's provider history into the local transactions table.

    Every attempt appends one entry to the sync ledger. The newest provider
    created_at of the last successful attempt bounds the next fetch.
    """

    def __init__(
        self,
        ledger: LedgerProvider,
        wallet_repo: WalletRepository,
        transaction_repo: TransactionRepository,
        sync_repo: TransactionSyncRepository,
        locks: KeyedAsyncLock,
        page_size: int = 100,
    ):
        self.ledger = ledger
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.sync_repo = sync_repo
        self.locks = locks
        self.page_size = page_size

    async def execute(self, user_id: str, wallet_id: str) -> SyncResult:
        wallet = await self.wallet_repo.get_wallet_for_user(wallet_id, user_id)
        if not wallet:
            raise WalletNotFoundError("Wallet not found")
        return await self.sync_wallet(wallet)

    async def sync_wallet(self, wallet: Wallet) -> SyncResult:
        async with self.locks.hold(wallet.id):
            return await self._run(wallet)

    async def _run(self, wallet: Wallet) -> SyncResult:
        start_time = time.time()
        previous = None
        fetched = 0

        self.logger.info(
            f"Starting wallet sync - Wallet: {wallet.id}, Bridge wallet: {wallet.bridge_wallet_id}",
            extra=log_sync_operation("sync_start", wallet.id),
        )

        try:
            latest = await self.sync_repo.get_latest_successful_sync(wallet.id)
            previous = latest.last_processed_bridge_created_at if latest else None
            updated_after_ms = to_epoch_ms(previous) if previous else None

            history = await self.ledger.get_wallet_history(
                wallet.bridge_wallet_id, self.page_size, updated_after_ms
            )
            fetched = len(history.data)

            new_transactions = 0
            for record in history.data:
                key = derive_bridge_transaction_id(wallet.bridge_wallet_id, record)
                if await self.transaction_repo.transaction_exists(key):
                    continue

                tx = map_bridge_transaction(record, wallet.id, key)
                if await self.transaction_repo.insert_transaction(tx):
                    new_transactions += 1
                else:
                    # Stored by a concurrent run between the check and the insert
                    record_sync_conflict()
                    self.logger.info(f"Transaction already synced - Key: {key}")

            watermark = compute_watermark(history.data, previous)
            now = utcnow()
            await self.sync_repo.record_sync(
                TransactionSync(
                    id=str(uuid.uuid4()),
                    wallet_id=wallet.id,
                    last_sync_at=now,
                    last_sync_transaction_count=history.count,
                    new_transactions_found=new_transactions,
                    sync_status=SyncStatus.SUCCESS,
                    last_processed_bridge_created_at=watermark,
                )
            )
            total = await self.transaction_repo.count_transactions(wallet.id)

            duration = time.time() - start_time
            self.logger.info(
                f"Wallet sync completed - Wallet: {wallet.id}, Reported: {history.count}, "
                f"New: {new_transactions}, Total: {total}, Duration: {duration:.3f}s",
                extra=log_sync_operation(
                    "sync_success", wallet.id, new_transactions=new_transactions
                ),
            )
            record_sync_run("success", duration, fetched=fetched, inserted=new_transactions)

            return SyncResult(
                success=True,
                synced_count=history.count,
                new_transactions=new_transactions,
                total_transactions=total,
                last_sync_at=now,
                message=f"Successfully synced {new_transactions} new transactions",
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Wallet sync failed - Wallet: {wallet.id}, Error: {str(e)}, Duration: {duration:.3f}s",
                extra=log_sync_operation("sync_error", wallet.id, error=str(e)),
            )
            record_sync_run("error", duration, fetched=fetched)
            await self._record_failure(wallet, str(e) or type(e).__name__, previous)
            raise

    async def _record_failure(self, wallet: Wallet, message: str, previous) -> None:
        try:
            await self.sync_repo.record_sync(
                TransactionSync(
                    id=str(uuid.uuid4()),
                    wallet_id=wallet.id,
                    last_sync_at=utcnow(),
                    last_sync_transaction_count=0,
                    new_transactions_found=0,
                    sync_status=SyncStatus.ERROR,
                    error_message=message,
                    last_processed_bridge_created_at=previous,
                )
            )
        except Exception as e:
            self.logger.error(
                f"Failed to record sync error - Wallet: {wallet.id}, Error: {str(e)}"
            )


class GetWalletTransactionHistory(LoggerMixin):
    def __init__(
        self,
        wallet_repo: WalletRepository,
        transaction_repo: TransactionRepository,
        sync_repo: TransactionSyncRepository,
    ):
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.sync_repo = sync_repo

    @track_time(transaction_history_query_duration_seconds)
    async def execute(
        self,
        user_id: str,
        wallet_id: str,
        page: int = 1,
        limit: int = 20,
        filters: Optional[TransactionFilters] = None,
    ) -> WalletTransactionHistoryResponse:
        self.logger.info(
            f"Fetching wallet history - User: {user_id}, Wallet: {wallet_id}, Page: {page}, Limit: {limit}"
        )

        wallet = await self.wallet_repo.get_wallet_for_user(wallet_id, user_id)
        if not wallet:
            raise WalletNotFoundError("Wallet not found")

        offset = (page - 1) * limit
        transactions, total_count = await self.transaction_repo.list_transactions(
            wallet.id, filters, limit=limit, offset=offset
        )
        latest_sync = await self.sync_repo.get_latest_sync(wallet.id)

        detail = WalletDetail(
            **wallet.model_dump(mode="json"),
            transaction_count=total_count,
            last_transaction_at=transactions[0].bridge_created_at if transactions else None,
        )

        return WalletTransactionHistoryResponse(
            wallet=detail,
            transactions=[TransactionResponse(**tx.model_dump()) for tx in transactions],
            pagination=Pagination.build(page, limit, total_count),
            sync_info=SyncInfo(**latest_sync.model_dump()) if latest_sync else None,
        )
