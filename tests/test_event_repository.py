import datetime
import json

import pytest

from walletsync.domain.event.entity import Event
from walletsync.infrastructure.db.event.postgresql_repository import PostgreSQLEventRepository

NOW = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def event():
    return Event(
        id="event-1",
        type="USER_WALLET_CREATED",
        module="WALLET",
        description="Wallet created for Ana Silva on solana",
        profile_id="profile-1",
        metadata={"wallet_id": "wallet-1", "chain": "solana"},
        created_at=NOW,
    )


@pytest.mark.asyncio
async def test_record_event(mock_pool, event):
    pool, conn = mock_pool
    repo = PostgreSQLEventRepository(pool)

    await repo.record_event(event)

    query, *args = conn.execute.call_args[0]
    assert query.startswith("INSERT INTO events(")
    assert "$6::jsonb" in query
    assert args[:5] == ["event-1", "USER_WALLET_CREATED", "WALLET", event.description, "profile-1"]
    assert json.loads(args[5]) == {"wallet_id": "wallet-1", "chain": "solana"}
    assert args[6] == NOW


@pytest.mark.asyncio
async def test_record_event_error(mock_pool, event):
    pool, conn = mock_pool
    conn.execute.side_effect = Exception("Database error")
    repo = PostgreSQLEventRepository(pool)

    with pytest.raises(Exception, match="Database error"):
        await repo.record_event(event)
