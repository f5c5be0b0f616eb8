import json
import time
from typing import List, Optional, Tuple

import asyncpg

from walletsync.domain.transaction.entity import Transaction as TransactionEntity
from walletsync.domain.transaction.entity import TransactionSync
from walletsync.domain.transaction.repository import (
    TransactionFilters,
    TransactionRepository,
    TransactionSyncRepository,
)
from walletsync.shared.monitoring.logging import LoggerMixin, log_database_operation
from walletsync.shared.monitoring.metrics import MetricsContext, record_database_operation

TRANSACTION_COLUMNS = (
    "id, bridge_transaction_id, wallet_id, amount, developer_fee, customer_id, "
    "source_payment_rail, source_currency, destination_payment_rail, destination_currency, "
    "bridge_created_at, bridge_updated_at, bridge_raw_data, created_at"
)

SYNC_COLUMNS = (
    "id, wallet_id, last_sync_at, last_sync_transaction_count, new_transactions_found, "
    "sync_status, error_message, last_processed_bridge_created_at"
)


def build_transaction_filters(wallet_id: str, filters: Optional[TransactionFilters]) -> Tuple[str, list]:
    """
    Build the WHERE clause for a wallet's transactions.

    Currency and payment rail match either side of the transfer and share one
    OR group, so with both given a row matches on currency or on rail.
    """
    clauses = ["wallet_id = $1"]
    args: list = [wallet_id]

    def param(value) -> str:
        args.append(value)
        return f"${len(args)}"

    if filters:
        if filters.date_from is not None:
            clauses.append(f"bridge_created_at >= {param(filters.date_from)}")
        if filters.date_to is not None:
            clauses.append(f"bridge_created_at <= {param(filters.date_to)}")
        if filters.min_amount is not None:
            clauses.append(f"CAST(amount AS NUMERIC) >= {param(filters.min_amount)}")
        if filters.max_amount is not None:
            clauses.append(f"CAST(amount AS NUMERIC) <= {param(filters.max_amount)}")
        either = []
        if filters.currency:
            p = param(filters.currency)
            either += [f"source_currency = {p}", f"destination_currency = {p}"]
        if filters.payment_rail:
            p = param(filters.payment_rail)
            either += [f"source_payment_rail = {p}", f"destination_payment_rail = {p}"]
        if either:
            clauses.append(f"({' OR '.join(either)})")

    return " AND ".join(clauses), args


def _row_to_transaction(row) -> TransactionEntity:
    raw = row["bridge_raw_data"]
    return TransactionEntity(
        id=row["id"],
        bridge_transaction_id=row["bridge_transaction_id"],
        wallet_id=row["wallet_id"],
        amount=row["amount"],
        developer_fee=row["developer_fee"],
        customer_id=row["customer_id"],
        source_payment_rail=row["source_payment_rail"],
        source_currency=row["source_currency"],
        destination_payment_rail=row["destination_payment_rail"],
        destination_currency=row["destination_currency"],
        bridge_created_at=row["bridge_created_at"],
        bridge_updated_at=row["bridge_updated_at"],
        bridge_raw_data=json.loads(raw) if isinstance(raw, str) else raw,
        created_at=row["created_at"],
    )


def _row_to_sync(row) -> TransactionSync:
    return TransactionSync(
        id=row["id"],
        wallet_id=row["wallet_id"],
        last_sync_at=row["last_sync_at"],
        last_sync_transaction_count=row["last_sync_transaction_count"],
        new_transactions_found=row["new_transactions_found"],
        sync_status=row["sync_status"],
        error_message=row["error_message"],
        last_processed_bridge_created_at=row["last_processed_bridge_created_at"],
    )


class PostgreSQLTransactionRepository(TransactionRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def transaction_exists(self, bridge_transaction_id: str) -> bool:
        async with self._pool.acquire() as conn:
            found = await conn.fetchval(
                "SELECT 1 FROM transactions WHERE bridge_transaction_id = $1",
                bridge_transaction_id,
            )
            return found is not None

    async def insert_transaction(self, tx: TransactionEntity) -> bool:
        start_time = time.time()

        try:
            with MetricsContext("insert_transaction", "database", "transactions"):
                async with self._pool.acquire() as conn:
                    inserted_id = await conn.fetchval(
                        f"INSERT INTO transactions({TRANSACTION_COLUMNS}) "
                        "VALUES($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13::jsonb, $14) "
                        "ON CONFLICT (bridge_transaction_id) DO NOTHING RETURNING id",
                        tx.id,
                        tx.bridge_transaction_id,
                        tx.wallet_id,
                        tx.amount,
                        tx.developer_fee,
                        tx.customer_id,
                        tx.source_payment_rail,
                        tx.source_currency,
                        tx.destination_payment_rail,
                        tx.destination_currency,
                        tx.bridge_created_at,
                        tx.bridge_updated_at,
                        json.dumps(tx.bridge_raw_data),
                        tx.created_at,
                    )

            inserted = inserted_id is not None
            self.logger.debug(
                f"Transaction insert - Key: {tx.bridge_transaction_id}, Inserted: {inserted}, "
                f"Duration: {time.time() - start_time:.3f}s"
            )
            return inserted

        except Exception as e:
            self.logger.error(
                f"Failed to insert transaction - Key: {tx.bridge_transaction_id}, Error: {str(e)}",
                extra=log_database_operation("insert_transaction", "transactions", error=str(e)),
            )
            raise

    async def count_transactions(self, wallet_id: str, filters: Optional[TransactionFilters] = None) -> int:
        where, args = build_transaction_filters(wallet_id, filters)
        async with self._pool.acquire() as conn:
            return await conn.fetchval(f"SELECT COUNT(*) FROM transactions WHERE {where}", *args)

    async def list_transactions(
        self,
        wallet_id: str,
        filters: Optional[TransactionFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[TransactionEntity], int]:
        start_time = time.time()
        where, args = build_transaction_filters(wallet_id, filters)
        page_args = [*args, limit, offset]

        try:
            with MetricsContext("list_transactions", "database", "transactions"):
                async with self._pool.acquire() as conn:
                    rows = await conn.fetch(
                        f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE {where} "
                        f"ORDER BY bridge_created_at DESC LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}",
                        *page_args,
                    )
                    total = await conn.fetchval(
                        f"SELECT COUNT(*) FROM transactions WHERE {where}", *args
                    )

            self.logger.info(
                f"Transactions listed - Wallet: {wallet_id}, Returned: {len(rows)}, Total: {total}, "
                f"Duration: {time.time() - start_time:.3f}s"
            )
            return [_row_to_transaction(row) for row in rows], total

        except Exception as e:
            self.logger.error(f"Failed to list transactions - Wallet: {wallet_id}, Error: {str(e)}")
            raise


class PostgreSQLTransactionSyncRepository(TransactionSyncRepository, LoggerMixin):
    """Append-only log of reconciliation attempts."""

    def __init__(self, pool):
        self._pool = pool

    async def record_sync(self, entry: TransactionSync) -> None:
        start_time = time.time()

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    f"INSERT INTO transaction_syncs({SYNC_COLUMNS}) "
                    "VALUES($1, $2, $3, $4, $5, $6, $7, $8)",
                    entry.id,
                    entry.wallet_id,
                    entry.last_sync_at,
                    entry.last_sync_transaction_count,
                    entry.new_transactions_found,
                    entry.sync_status.value,
                    entry.error_message,
                    entry.last_processed_bridge_created_at,
                )

            duration = time.time() - start_time
            record_database_operation("record_sync", "transaction_syncs", "success", duration)

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to record sync entry - Wallet: {entry.wallet_id}, Status: {entry.sync_status.value}, Error: {str(e)}"
            )
            record_database_operation("record_sync", "transaction_syncs", "error", duration)
            raise

    async def get_latest_sync(self, wallet_id: str) -> Optional[TransactionSync]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SYNC_COLUMNS} FROM transaction_syncs WHERE wallet_id = $1 "
                "ORDER BY last_sync_at DESC LIMIT 1",
                wallet_id,
            )
            return _row_to_sync(row) if row else None

    async def get_latest_successful_sync(self, wallet_id: str) -> Optional[TransactionSync]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SYNC_COLUMNS} FROM transaction_syncs "
                "WHERE wallet_id = $1 AND sync_status = 'success' "
                "ORDER BY last_sync_at DESC LIMIT 1",
                wallet_id,
            )
            return _row_to_sync(row) if row else None
