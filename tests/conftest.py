import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from walletsync.domain.event.entity import Event
from walletsync.domain.event.repository import EventRepository
from walletsync.domain.exceptions import BridgeNotConfiguredError
from walletsync.domain.ledger.entity import (
    BridgeTransaction,
    BridgeTransactionHistory,
    BridgeWallet,
    BridgeWalletList,
)
from walletsync.domain.ledger.repository import LedgerProvider
from walletsync.domain.profile.entity import Profile, UserRole
from walletsync.domain.profile.repository import ProfileFilters, ProfileRepository
from walletsync.domain.transaction.entity import SyncStatus, Transaction, TransactionSync
from walletsync.domain.transaction.repository import (
    TransactionFilters,
    TransactionRepository,
    TransactionSyncRepository,
)
from walletsync.domain.wallet.entity import Wallet, WalletStats
from walletsync.domain.wallet.repository import WalletRepository
from walletsync.shared.utils.keyed_lock import KeyedAsyncLock

NOW = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def make_record(created_at: str, amount: str = "10.00", **overrides) -> BridgeTransaction:
    payload = {
        "amount": amount,
        "developer_fee": "0.0",
        "customer_id": "cust_1",
        "source": {"payment_rail": "ach", "currency": "usd"},
        "destination": {"payment_rail": "solana", "currency": "usdc"},
        "created_at": created_at,
        "updated_at": created_at,
    }
    payload.update(overrides)
    return BridgeTransaction.model_validate(payload)


def make_profile(**overrides) -> Profile:
    data = dict(
        id="profile-1",
        user_id="user-1",
        email="ana@example.com",
        first_name="Ana",
        last_name="Silva",
        role=UserRole.USER,
        bridge_customer_id="cust_1",
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(overrides)
    return Profile(**data)


def make_wallet(**overrides) -> Wallet:
    data = dict(
        id="wallet-1",
        profile_id="profile-1",
        bridge_wallet_id="bw_1",
        chain="solana",
        address="So1anaAddress",
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(overrides)
    return Wallet(**data)


class FakeLedger(LedgerProvider):
    """Scripted provider. Queued histories are served in order; the last one repeats."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.histories: List[BridgeTransactionHistory] = []
        self.history_error: Optional[Exception] = None
        self.history_calls: List[Tuple[str, int, Optional[int]]] = []
        self.customer_wallets: Dict[str, List[BridgeWallet]] = {}
        self.created: List[Tuple[str, str]] = []
        self.create_error: Optional[Exception] = None

    @property
    def is_configured(self) -> bool:
        return self.configured

    def queue_history(self, *records: BridgeTransaction, count: Optional[int] = None):
        self.histories.append(
            BridgeTransactionHistory(count=len(records) if count is None else count, data=list(records))
        )

    async def get_wallet_history(self, bridge_wallet_id, limit=100, updated_after_ms=None):
        self.history_calls.append((bridge_wallet_id, limit, updated_after_ms))
        if self.history_error:
            raise self.history_error
        if not self.configured:
            return BridgeTransactionHistory(count=0, data=[])
        if not self.histories:
            return BridgeTransactionHistory(count=0, data=[])
        if len(self.histories) > 1:
            return self.histories.pop(0)
        return self.histories[0]

    async def list_customer_wallets(self, customer_id):
        if not self.configured:
            raise BridgeNotConfiguredError()
        wallets = self.customer_wallets.get(customer_id, [])
        return BridgeWalletList(count=len(wallets), data=wallets)

    async def create_wallet(self, customer_id, chain):
        self.created.append((customer_id, chain))
        if self.create_error:
            raise self.create_error
        return BridgeWallet(
            id=f"bw_new_{len(self.created)}",
            chain=chain,
            address="NewAddress",
            tags=[],
            created_at="2025-03-01T12:00:00.000Z",
            updated_at="2025-03-01T12:00:00.000Z",
        )


def matches_filters(tx: Transaction, filters: Optional[TransactionFilters]) -> bool:
    """Same semantics as the SQL WHERE clause built for the history query."""
    if filters is None:
        return True
    if filters.date_from is not None and tx.bridge_created_at < filters.date_from:
        return False
    if filters.date_to is not None and tx.bridge_created_at > filters.date_to:
        return False
    if filters.min_amount is not None and Decimal(tx.amount) < filters.min_amount:
        return False
    if filters.max_amount is not None and Decimal(tx.amount) > filters.max_amount:
        return False
    either = []
    if filters.currency:
        either += [tx.source_currency == filters.currency, tx.destination_currency == filters.currency]
    if filters.payment_rail:
        either += [
            tx.source_payment_rail == filters.payment_rail,
            tx.destination_payment_rail == filters.payment_rail,
        ]
    return any(either) if either else True


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.rows: Dict[str, Transaction] = {}
        # Keys another writer "wins" between the existence check and the insert
        self.race_keys: set = set()
        self.queried_filters: List[Optional[TransactionFilters]] = []

    async def transaction_exists(self, bridge_transaction_id):
        return bridge_transaction_id in self.rows

    async def insert_transaction(self, tx):
        if tx.bridge_transaction_id in self.race_keys:
            self.race_keys.discard(tx.bridge_transaction_id)
            self.rows[tx.bridge_transaction_id] = tx
            return False
        if tx.bridge_transaction_id in self.rows:
            return False
        self.rows[tx.bridge_transaction_id] = tx
        return True

    def _matching(self, wallet_id, filters):
        return [tx for tx in self.rows.values() if tx.wallet_id == wallet_id and matches_filters(tx, filters)]

    async def count_transactions(self, wallet_id, filters: Optional[TransactionFilters] = None):
        return len(self._matching(wallet_id, filters))

    async def list_transactions(self, wallet_id, filters=None, limit=20, offset=0):
        self.queried_filters.append(filters)
        matching = sorted(
            self._matching(wallet_id, filters),
            key=lambda tx: tx.bridge_created_at,
            reverse=True,
        )
        return matching[offset:offset + limit], len(matching)


class InMemorySyncRepository(TransactionSyncRepository):
    def __init__(self):
        self.entries: List[TransactionSync] = []
        self.fail_writes = False

    async def record_sync(self, entry):
        if self.fail_writes:
            raise RuntimeError("sync ledger unavailable")
        self.entries.append(entry)

    def _latest(self, wallet_id, status=None):
        candidates = [
            (entry.last_sync_at, index, entry)
            for index, entry in enumerate(self.entries)
            if entry.wallet_id == wallet_id and (status is None or entry.sync_status == status)
        ]
        return max(candidates)[2] if candidates else None

    async def get_latest_sync(self, wallet_id):
        return self._latest(wallet_id)

    async def get_latest_successful_sync(self, wallet_id):
        return self._latest(wallet_id, SyncStatus.SUCCESS)


class InMemoryWalletRepository(WalletRepository):
    def __init__(self, profiles: Optional[Dict[str, Profile]] = None):
        self.wallets: Dict[str, Wallet] = {}
        self.profiles = profiles if profiles is not None else {}

    async def save_wallet(self, wallet):
        self.wallets[wallet.bridge_wallet_id] = wallet

    async def update_wallet(self, wallet):
        self.wallets[wallet.bridge_wallet_id] = wallet

    async def get_wallet_by_bridge_id(self, bridge_wallet_id):
        return self.wallets.get(bridge_wallet_id)

    async def get_wallet_for_user(self, wallet_id, user_id):
        for wallet in self.wallets.values():
            profile = self.profiles.get(wallet.profile_id)
            if wallet.id == wallet_id and profile and profile.user_id == user_id:
                return wallet
        return None

    async def list_wallets_by_profile(self, profile_id, active_only=True):
        return [
            w for w in self.wallets.values()
            if w.profile_id == profile_id and (w.is_active or not active_only)
        ]

    async def get_wallet_stats(self, since):
        return WalletStats()


class InMemoryProfileRepository(ProfileRepository):
    def __init__(self, profiles: Optional[Dict[str, Profile]] = None):
        self.profiles = profiles if profiles is not None else {}
        self.lookups = 0

    def add(self, profile: Profile) -> Profile:
        self.profiles[profile.id] = profile
        return profile

    async def get_profile_by_user_id(self, user_id):
        self.lookups += 1
        return next((p for p in self.profiles.values() if p.user_id == user_id), None)

    async def get_profile_by_id(self, profile_id):
        return self.profiles.get(profile_id)

    async def list_user_profiles(self, filters: ProfileFilters, limit=10, offset=0):
        users = [p for p in self.profiles.values() if p.role == UserRole.USER]
        return users[offset:offset + limit], len(users)


class InMemoryEventRepository(EventRepository):
    def __init__(self):
        self.events: List[Event] = []

    async def record_event(self, event):
        self.events.append(event)


@pytest.fixture
def mock_pool():
    """asyncpg pool whose acquire() yields an AsyncMock connection"""
    pool = Mock()
    conn = AsyncMock()

    async_context = AsyncMock()
    async_context.__aenter__ = AsyncMock(return_value=conn)
    async_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire.return_value = async_context

    return pool, conn


@pytest.fixture
def profiles():
    return {}


@pytest.fixture
def profile_repo(profiles):
    return InMemoryProfileRepository(profiles)


@pytest.fixture
def wallet_repo(profiles):
    return InMemoryWalletRepository(profiles)


@pytest.fixture
def transaction_repo():
    return InMemoryTransactionRepository()


@pytest.fixture
def sync_repo():
    return InMemorySyncRepository()


@pytest.fixture
def event_repo():
    return InMemoryEventRepository()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def locks():
    return KeyedAsyncLock()
