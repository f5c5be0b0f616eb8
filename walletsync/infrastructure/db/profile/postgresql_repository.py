import time
from typing import List, Optional, Tuple

from walletsync.domain.profile.entity import Profile
from walletsync.domain.profile.repository import (
    PROFILE_SORT_FIELDS,
    ProfileFilters,
    ProfileRepository,
)
from walletsync.shared.monitoring.logging import LoggerMixin
from walletsync.shared.monitoring.metrics import MetricsContext

PROFILE_COLUMNS = (
    "p.id, p.user_id, p.email, p.first_name, p.last_name, p.role, p.status, "
    "p.bridge_customer_id, p.created_at, p.updated_at"
)


def build_profile_filters(filters: ProfileFilters) -> Tuple[str, list]:
    """
    WHERE clause over profiles aliased as p. Only USER profiles are listed.

    Wallet filters (has_wallets, chain, wallet_tag) look at active wallets and
    are combined with AND.
    """
    clauses = ["p.role = 'USER'"]
    args: list = []

    def param(value) -> str:
        args.append(value)
        return f"${len(args)}"

    if filters.search:
        p = param(f"%{filters.search}%")
        clauses.append(f"(p.first_name ILIKE {p} OR p.last_name ILIKE {p} OR p.email ILIKE {p})")

    active_wallet = "SELECT 1 FROM wallets w WHERE w.profile_id = p.id AND w.is_active = TRUE"
    if filters.has_wallets is True:
        clauses.append(f"EXISTS ({active_wallet})")
    elif filters.has_wallets is False:
        clauses.append("NOT EXISTS (SELECT 1 FROM wallets w WHERE w.profile_id = p.id)")

    if filters.chain and filters.chain != "all":
        clauses.append(f"EXISTS ({active_wallet} AND w.chain = {param(filters.chain)})")
    if filters.wallet_tag and filters.wallet_tag != "all":
        clauses.append(f"EXISTS ({active_wallet} AND w.wallet_tag = {param(filters.wallet_tag)})")

    return " AND ".join(clauses), args


def build_profile_order(filters: ProfileFilters) -> str:
    sort_by = filters.sort_by if filters.sort_by in PROFILE_SORT_FIELDS else "created_at"
    sort_order = "ASC" if filters.sort_order.lower() == "asc" else "DESC"
    return f"p.{sort_by} {sort_order}"


def _row_to_profile(row) -> Profile:
    return Profile(
        id=row["id"],
        user_id=row["user_id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=row["role"],
        status=row["status"],
        bridge_customer_id=row["bridge_customer_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgreSQLProfileRepository(ProfileRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    async def get_profile_by_user_id(self, user_id: str) -> Optional[Profile]:
        with MetricsContext("get_profile_by_user_id", "database", "profiles"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles p WHERE p.user_id = $1", user_id
                )
                return _row_to_profile(row) if row else None

    async def get_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        with MetricsContext("get_profile_by_id", "database", "profiles"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles p WHERE p.id = $1", profile_id
                )
                return _row_to_profile(row) if row else None

    async def list_user_profiles(
        self, filters: ProfileFilters, limit: int = 10, offset: int = 0
    ) -> Tuple[List[Profile], int]:
        start_time = time.time()
        where, args = build_profile_filters(filters)
        order = build_profile_order(filters)

        try:
            with MetricsContext("list_user_profiles", "database", "profiles"):
                async with self._pool.acquire() as conn:
                    rows = await conn.fetch(
                        f"SELECT {PROFILE_COLUMNS} FROM profiles p WHERE {where} ORDER BY {order} "
                        f"LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}",
                        *args,
                        limit,
                        offset,
                    )
                    total = await conn.fetchval(
                        f"SELECT COUNT(*) FROM profiles p WHERE {where}", *args
                    )

            self.logger.info(
                f"Profiles listed - Returned: {len(rows)}, Total: {total}, "
                f"Duration: {time.time() - start_time:.3f}s"
            )
            return [_row_to_profile(row) for row in rows], total

        except Exception as e:
            self.logger.error(f"Failed to list profiles - Error: {str(e)}")
            raise
