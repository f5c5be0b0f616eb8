import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeLedger, make_profile, make_record, make_wallet
from walletsync.application.v1.transaction.routers import router as transaction_router
from walletsync.application.v1.wallet.routers import router as wallet_router
from walletsync.domain.exceptions import BridgeAPIError
from walletsync.domain.ledger.entity import BridgeWallet
from walletsync.domain.profile.entity import UserRole
from walletsync.domain.transaction.entity import SyncStatus
from walletsync.shared.cache.ttl_cache import InMemoryTTLCache

ADMIN = {"X-User-Id": "admin-1"}


@pytest.fixture
def app(profile_repo, wallet_repo, transaction_repo, sync_repo, event_repo, ledger, locks):
    app = FastAPI()
    app.include_router(wallet_router)
    app.include_router(transaction_router)

    profile_repo.add(make_profile(id="profile-admin", user_id="admin-1", role=UserRole.SUPERADMIN))
    profile_repo.add(make_profile())
    wallet_repo.wallets["bw_1"] = make_wallet()

    app.state.config = SimpleNamespace(sync_page_size=50)
    app.state.ledger = ledger
    app.state.profile_repo = profile_repo
    app.state.wallet_repo = wallet_repo
    app.state.transaction_repo = transaction_repo
    app.state.sync_repo = sync_repo
    app.state.event_repo = event_repo
    app.state.profile_cache = InMemoryTTLCache(ttl_seconds=300)
    app.state.sync_locks = locks
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestAdminAccess:
    def test_missing_header(self, client):
        response = client.get("/api/wallets/stats")

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    def test_regular_user_is_forbidden(self, client):
        response = client.get("/api/wallets/user-1/wallet-1", headers={"X-User-Id": "user-1"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Unauthorized - Admin access required"

    def test_unknown_user_is_forbidden_and_not_cached(self, client, app):
        response = client.post("/api/wallets/user-1/wallet-1", headers={"X-User-Id": "ghost"})

        assert response.status_code == 403
        assert app.state.profile_cache.get("ghost") == (None, False)

    def test_admin_profile_is_cached(self, client, profile_repo):
        client.get("/api/wallets/stats", headers=ADMIN)
        client.get("/api/wallets/stats", headers=ADMIN)

        assert profile_repo.lookups == 1

    def test_every_route_is_guarded(self, client):
        requests = [
            ("get", "/api/wallets"),
            ("get", "/api/wallets/stats"),
            ("post", "/api/wallets/sync"),
            ("get", "/api/wallets/user-1"),
            ("post", "/api/wallets/user-1/create"),
            ("get", "/api/wallets/user-1/wallet-1"),
            ("post", "/api/wallets/user-1/wallet-1"),
        ]

        for method, path in requests:
            assert getattr(client, method)(path).status_code == 401, path


class TestTransactionRoutes:
    def test_sync_then_history(self, client, ledger):
        ledger.queue_history(
            make_record("2025-01-01T00:00:00.000Z", "10.00"),
            make_record("2025-01-02T00:00:00.000Z", "20.00"),
        )

        sync = client.post("/api/wallets/user-1/wallet-1", headers=ADMIN)

        assert sync.status_code == 200
        body = sync.json()
        assert body["success"] is True
        assert body["new_transactions"] == 2
        assert body["message"] == "Successfully synced 2 new transactions"
        assert ledger.history_calls == [("bw_1", 50, None)]

        history = client.get("/api/wallets/user-1/wallet-1?page=1&limit=1", headers=ADMIN)

        assert history.status_code == 200
        data = history.json()
        assert [tx["amount"] for tx in data["transactions"]] == ["20.00"]
        assert data["wallet"]["transaction_count"] == 2
        assert data["pagination"] == {
            "current_page": 1,
            "total_pages": 2,
            "total_count": 2,
            "limit": 1,
            "has_next_page": True,
            "has_previous_page": False,
        }
        assert data["sync_info"]["sync_status"] == "success"

    def test_unknown_wallet(self, client):
        response = client.get("/api/wallets/user-1/wallet-404", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["detail"] == "Wallet not found"

    def test_sync_unknown_wallet(self, client):
        response = client.post("/api/wallets/user-2/wallet-1", headers=ADMIN)

        assert response.status_code == 404

    def test_sync_failure_body(self, client, ledger, sync_repo):
        ledger.history_error = BridgeAPIError("Bridge API error: 500 Internal Server Error", status_code=500)

        response = client.post("/api/wallets/user-1/wallet-1", headers=ADMIN)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to sync wallet transactions",
            "details": "Bridge API error: 500 Internal Server Error",
            "message": "Bridge API error: 500 Internal Server Error",
        }
        assert sync_repo.entries[-1].sync_status == SyncStatus.ERROR

    @pytest.mark.parametrize(
        "query",
        ["limit=0", "limit=101", "page=0", "dateFrom=yesterday", "dateTo=2025-13-01"],
    )
    def test_invalid_query(self, client, query):
        response = client.get(f"/api/wallets/user-1/wallet-1?{query}", headers=ADMIN)

        assert response.status_code == 422

    def test_invalid_amount_bound(self, client):
        response = client.get("/api/wallets/user-1/wallet-1?minAmount=lots", headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid minAmount: lots"

    def test_filter_query_parameters_reach_repository(self, client, ledger, transaction_repo):
        ledger.queue_history(
            make_record("2025-01-01T00:00:00.000Z", "10.00"),
            make_record("2025-01-02T00:00:00.000Z", "20.00"),
            make_record(
                "2025-01-03T00:00:00.000Z",
                "30.00",
                source={"payment_rail": "wire", "currency": "eur"},
                destination={"payment_rail": "base", "currency": "eurc"},
            ),
        )
        client.post("/api/wallets/user-1/wallet-1", headers=ADMIN)

        response = client.get(
            "/api/wallets/user-1/wallet-1"
            "?dateFrom=2025-01-01T12:00:00Z&dateTo=2025-01-31T00:00:00Z"
            "&minAmount=5&maxAmount=50&currency=usdc&paymentRail=wire",
            headers=ADMIN,
        )

        assert response.status_code == 200
        filters = transaction_repo.queried_filters[-1]
        assert filters.date_from == datetime.datetime(2025, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
        assert filters.date_to == datetime.datetime(2025, 1, 31, tzinfo=datetime.timezone.utc)
        assert filters.min_amount == Decimal("5")
        assert filters.max_amount == Decimal("50")
        assert filters.currency == "usdc"
        assert filters.payment_rail == "wire"
        # usdc destination or wire source; the 2025-01-01 record falls before dateFrom
        assert [tx["amount"] for tx in response.json()["transactions"]] == ["30.00", "20.00"]
        assert response.json()["pagination"]["total_count"] == 2

    def test_amount_range_filters_history(self, client, ledger):
        ledger.queue_history(
            make_record("2025-01-01T00:00:00.000Z", "10.00"),
            make_record("2025-01-02T00:00:00.000Z", "200.00"),
        )
        client.post("/api/wallets/user-1/wallet-1", headers=ADMIN)

        response = client.get("/api/wallets/user-1/wallet-1?minAmount=100", headers=ADMIN)

        assert [tx["amount"] for tx in response.json()["transactions"]] == ["200.00"]
        assert response.json()["wallet"]["transaction_count"] == 1


class TestWalletRoutes:
    def test_stats_is_not_a_user_id(self, client):
        response = client.get("/api/wallets/stats", headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert body["total_wallets"] == 0
        assert body["wallets_by_tag"] == {"general_use": 0, "p2p": 0}
        assert body["recent_activity"]["active_chains"] == 0

    def test_get_user_wallets(self, client):
        response = client.get("/api/wallets/user-1", headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["user_id"] == "user-1"
        assert body["user"]["wallets_count"] == 1
        assert body["wallets"][0]["bridge_wallet_id"] == "bw_1"

    def test_get_unknown_user_wallets(self, client):
        response = client.get("/api/wallets/ghost", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_list_users(self, client):
        response = client.get("/api/wallets?include_wallets=true", headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert [u["user_id"] for u in body["users"]] == ["user-1"]
        assert body["users"][0]["wallets_count"] == 1
        assert body["pagination"]["limit"] == 10

    def test_create_wallet(self, client, ledger, event_repo):
        response = client.post(
            "/api/wallets/user-1/create", json={"chain": "base", "wallet_tag": "p2p"}, headers=ADMIN
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Wallet created successfully for base blockchain"
        assert body["wallet"]["chain"] == "base"
        assert body["wallet"]["wallet_tag"] == "p2p"
        assert event_repo.events[0].metadata["created_by"] == "admin-1"

    def test_create_wallet_rejects_unknown_chain(self, client, ledger):
        response = client.post("/api/wallets/user-1/create", json={"chain": "ethereum"}, headers=ADMIN)

        assert response.status_code == 422
        assert ledger.created == []

    def test_create_wallet_without_kyc(self, client, profile_repo):
        profile_repo.add(make_profile(id="profile-3", user_id="user-3", bridge_customer_id=None))

        response = client.post("/api/wallets/user-3/create", json={"chain": "solana"}, headers=ADMIN)

        assert response.status_code == 400
        assert "KYC" in response.json()["detail"]

    def test_create_wallet_provider_error(self, client, ledger):
        ledger.create_error = BridgeAPIError("Bridge API error: 400 Bad Request", status_code=400)

        response = client.post("/api/wallets/user-1/create", json={"chain": "solana"}, headers=ADMIN)

        assert response.status_code == 502
        assert response.json()["detail"] == (
            "Failed to create wallet in Bridge API: Bridge API error: 400 Bad Request"
        )

    def test_sync_wallets(self, client, ledger):
        ledger.customer_wallets["cust_1"] = [
            BridgeWallet(
                id="bw_9",
                chain="solana",
                address="Addr9",
                tags=["peer"],
                created_at="2025-01-01T00:00:00.000Z",
                updated_at="2025-01-01T00:00:00.000Z",
            )
        ]

        response = client.post(
            "/api/wallets/sync", json={"profile_id": "profile-1", "bridge_customer_id": "cust_1"}, headers=ADMIN
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "synced_count": 1,
            "new_wallets": 1,
            "updated_wallets": 0,
            "message": "Successfully synced 1 wallets (1 new, 0 updated)",
        }

    def test_sync_wallets_mismatch(self, client):
        response = client.post(
            "/api/wallets/sync", json={"profile_id": "profile-1", "bridge_customer_id": "cust_x"}, headers=ADMIN
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Bridge customer ID mismatch"

    def test_sync_wallets_requires_fields(self, client):
        response = client.post("/api/wallets/sync", json={"profile_id": ""}, headers=ADMIN)

        assert response.status_code == 422

    def test_sync_wallets_without_api_key(self, client, app):
        app.state.ledger = FakeLedger(configured=False)

        response = client.post(
            "/api/wallets/sync", json={"profile_id": "profile-1", "bridge_customer_id": "cust_1"}, headers=ADMIN
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "synced_count": 0,
            "new_wallets": 0,
            "updated_wallets": 0,
            "message": "Bridge API key not configured",
        }
