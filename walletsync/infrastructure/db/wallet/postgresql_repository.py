import datetime
import time
from typing import List, Optional

import asyncpg

from walletsync.domain.wallet.entity import Wallet, WalletStats, WalletTag
from walletsync.domain.wallet.repository import WalletRepository

# Monitoring imports
from walletsync.shared.monitoring.logging import LoggerMixin
from walletsync.shared.monitoring.metrics import (
    MetricsContext,
    record_database_operation,
)

WALLET_COLUMNS = (
    "id, profile_id, wallet_tag, is_active, bridge_wallet_id, chain, address, bridge_tags, "
    "bridge_created_at, bridge_updated_at, created_at, updated_at"
)


def _row_to_wallet(row) -> Wallet:
    return Wallet(
        id=row["id"],
        profile_id=row["profile_id"],
        wallet_tag=row["wallet_tag"],
        is_active=row["is_active"],
        bridge_wallet_id=row["bridge_wallet_id"],
        chain=row["chain"],
        address=row["address"],
        bridge_tags=list(row["bridge_tags"] or []),
        bridge_created_at=row["bridge_created_at"],
        bridge_updated_at=row["bridge_updated_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgreSQLWalletRepository(WalletRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def save_wallet(self, wallet: Wallet) -> None:
        start_time = time.time()

        self.logger.info(
            f"Saving wallet to database - Bridge ID: {wallet.bridge_wallet_id}, Profile: {wallet.profile_id}"
        )

        try:
            with MetricsContext("save_wallet", "database", "wallets"):
                async with self._pool.acquire() as conn:
                    await conn.execute(
                        f"INSERT INTO wallets({WALLET_COLUMNS}) "
                        "VALUES($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)",
                        wallet.id,
                        wallet.profile_id,
                        wallet.wallet_tag.value,
                        wallet.is_active,
                        wallet.bridge_wallet_id,
                        wallet.chain.value,
                        wallet.address,
                        wallet.bridge_tags,
                        wallet.bridge_created_at,
                        wallet.bridge_updated_at,
                        wallet.created_at,
                        wallet.updated_at,
                    )

            duration = time.time() - start_time
            self.logger.info(
                f"Wallet saved successfully - Bridge ID: {wallet.bridge_wallet_id}, Duration: {duration:.3f}s"
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to save wallet - Bridge ID: {wallet.bridge_wallet_id}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            raise

    async def update_wallet(self, wallet: Wallet) -> None:
        start_time = time.time()

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "UPDATE wallets SET profile_id = $2, wallet_tag = $3, is_active = $4, chain = $5, "
                    "address = $6, bridge_tags = $7, bridge_created_at = $8, bridge_updated_at = $9, "
                    "updated_at = $10 WHERE bridge_wallet_id = $1",
                    wallet.bridge_wallet_id,
                    wallet.profile_id,
                    wallet.wallet_tag.value,
                    wallet.is_active,
                    wallet.chain.value,
                    wallet.address,
                    wallet.bridge_tags,
                    wallet.bridge_created_at,
                    wallet.bridge_updated_at,
                    wallet.updated_at,
                )

            duration = time.time() - start_time
            self.logger.info(
                f"Wallet updated - Bridge ID: {wallet.bridge_wallet_id}, Duration: {duration:.3f}s"
            )
            record_database_operation("update_wallet", "wallets", "success", duration)

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to update wallet - Bridge ID: {wallet.bridge_wallet_id}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            record_database_operation("update_wallet", "wallets", "error", duration)
            raise

    async def get_wallet_by_bridge_id(self, bridge_wallet_id: str) -> Optional[Wallet]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {WALLET_COLUMNS} FROM wallets WHERE bridge_wallet_id = $1",
                bridge_wallet_id,
            )
            return _row_to_wallet(row) if row else None

    async def get_wallet_for_user(self, wallet_id: str, user_id: str) -> Optional[Wallet]:
        start_time = time.time()

        self.logger.info(f"Fetching wallet for user - Wallet: {wallet_id}, User: {user_id}")

        try:
            with MetricsContext("get_wallet_for_user", "database", "wallets"):
                async with self._pool.acquire() as conn:
                    row = await conn.fetchrow(
                        "SELECT w.id, w.profile_id, w.wallet_tag, w.is_active, w.bridge_wallet_id, w.chain, "
                        "w.address, w.bridge_tags, w.bridge_created_at, w.bridge_updated_at, "
                        "w.created_at, w.updated_at "
                        "FROM wallets w JOIN profiles p ON p.id = w.profile_id "
                        "WHERE w.id = $1 AND p.user_id = $2",
                        wallet_id,
                        user_id,
                    )
                    wallet = _row_to_wallet(row) if row else None

            duration = time.time() - start_time
            self.logger.info(
                f"Wallet fetch completed - Wallet: {wallet_id}, Found: {wallet is not None}, Duration: {duration:.3f}s"
            )
            return wallet

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to fetch wallet - Wallet: {wallet_id}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            raise

    async def list_wallets_by_profile(self, profile_id: str, active_only: bool = True) -> List[Wallet]:
        query = f"SELECT {WALLET_COLUMNS} FROM wallets WHERE profile_id = $1"
        if active_only:
            query += " AND is_active = TRUE"
        query += " ORDER BY created_at DESC"

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, profile_id)
            return [_row_to_wallet(row) for row in rows]

    async def get_wallet_stats(self, since: datetime.datetime) -> WalletStats:
        start_time = time.time()

        try:
            with MetricsContext("get_wallet_stats", "database", "wallets"):
                async with self._pool.acquire() as conn:
                    total_wallets = await conn.fetchval(
                        "SELECT COUNT(*) FROM wallets WHERE is_active = TRUE"
                    )
                    total_users = await conn.fetchval(
                        "SELECT COUNT(*) FROM profiles p WHERE p.role = 'USER' AND EXISTS "
                        "(SELECT 1 FROM wallets w WHERE w.profile_id = p.id AND w.is_active = TRUE)"
                    )
                    chain_rows = await conn.fetch(
                        "SELECT chain, COUNT(*) AS count FROM wallets WHERE is_active = TRUE GROUP BY chain"
                    )
                    tag_rows = await conn.fetch(
                        "SELECT wallet_tag, COUNT(*) AS count FROM wallets WHERE is_active = TRUE GROUP BY wallet_tag"
                    )
                    new_today = await conn.fetchval(
                        "SELECT COUNT(*) FROM wallets WHERE is_active = TRUE AND created_at >= $1",
                        since,
                    )
                    multiple = await conn.fetchval(
                        "SELECT COUNT(*) FROM (SELECT w.profile_id FROM wallets w "
                        "JOIN profiles p ON p.id = w.profile_id "
                        "WHERE p.role = 'USER' AND w.is_active = TRUE "
                        "GROUP BY w.profile_id HAVING COUNT(*) > 1) AS multi"
                    )

            wallets_by_tag = {tag.value: 0 for tag in WalletTag}
            wallets_by_tag.update({row["wallet_tag"]: row["count"] for row in tag_rows})

            stats = WalletStats(
                total_wallets=total_wallets or 0,
                total_users_with_wallets=total_users or 0,
                wallets_by_chain={row["chain"]: row["count"] for row in chain_rows},
                wallets_by_tag=wallets_by_tag,
                new_wallets_today=new_today or 0,
                users_with_multiple_wallets=multiple or 0,
            )

            self.logger.info(
                f"Wallet stats computed - Total: {stats.total_wallets}, Duration: {time.time() - start_time:.3f}s"
            )
            return stats

        except Exception as e:
            self.logger.error(f"Failed to compute wallet stats - Error: {str(e)}")
            raise
