import time
from contextlib import asynccontextmanager
from typing import Any, Dict

import asyncpg
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

# Monitoring imports
from prometheus_fastapi_instrumentator import Instrumentator

from walletsync.application.v1.transaction.routers import router as transaction_router
from walletsync.application.v1.wallet.routers import router as wallet_router
from walletsync.infrastructure.bridge.client import BridgeLedgerClient
from walletsync.infrastructure.config import Config, load_config
from walletsync.infrastructure.db.event.postgresql_repository import PostgreSQLEventRepository
from walletsync.infrastructure.db.profile.postgresql_repository import (
    PostgreSQLProfileRepository,
)
from walletsync.infrastructure.db.transaction.postgresql_repository import (
    PostgreSQLTransactionRepository,
    PostgreSQLTransactionSyncRepository,
)
from walletsync.infrastructure.db.wallet.postgresql_repository import (
    PostgreSQLWalletRepository,
)
from walletsync.shared.cache.ttl_cache import InMemoryTTLCache
from walletsync.shared.monitoring.logging import get_logger, setup_logging
from walletsync.shared.monitoring.metrics import (
    api_request_duration_seconds,
    api_requests_total,
    database_connection_pool_idle,
    database_connection_pool_size,
    database_connection_pool_used,
    database_health_status,
    record_error,
    set_app_info,
)
from walletsync.shared.utils.keyed_lock import KeyedAsyncLock

config = load_config()

setup_logging(config.log_level)
logger = get_logger(__name__)


def update_pool_metrics(pool) -> None:
    database_connection_pool_size.set(pool.get_size())
    database_connection_pool_used.set(pool.get_size() - pool.get_idle_size())
    database_connection_pool_idle.set(pool.get_idle_size())


def wire_state(app: FastAPI, pool, settings: Config) -> None:
    """Attach repositories, the provider client, the caller cache and sync locks to app.state."""
    state = app.state
    state.pool = pool
    state.config = settings

    state.profile_repo = PostgreSQLProfileRepository(pool)
    state.wallet_repo = PostgreSQLWalletRepository(pool)
    state.transaction_repo = PostgreSQLTransactionRepository(pool)
    state.sync_repo = PostgreSQLTransactionSyncRepository(pool)
    state.event_repo = PostgreSQLEventRepository(pool)

    state.ledger = BridgeLedgerClient(
        api_key=settings.bridge_api_key,
        base_url=settings.bridge_api_url,
        timeout=settings.bridge_timeout_seconds,
        max_retries=settings.bridge_max_retries,
    )
    state.profile_cache = InMemoryTTLCache(settings.profile_cache_ttl_seconds)
    state.sync_locks = KeyedAsyncLock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Wallet Sync Service v{config.app_version} ({config.environment})")

    try:
        pool = await asyncpg.create_pool(config.postgres_dsn)
        wire_state(app, pool, config)

        update_pool_metrics(pool)
        database_health_status.set(1)
        set_app_info(config.app_version, config.environment)

        logger.info(
            f"Service ready - Bridge URL: {config.bridge_api_url}, "
            f"Bridge configured: {config.bridge_configured}, Page size: {config.sync_page_size}"
        )

        yield

    except Exception as e:
        logger.error(f"Failed to start application: {str(e)}")
        record_error(type(e).__name__, "startup")
        raise
    finally:
        logger.info("Shutting down application")

        if hasattr(app.state, "ledger"):
            await app.state.ledger.aclose()
        if hasattr(app.state, "pool"):
            await app.state.pool.close()


app = FastAPI(
    title="Wallet Sync Service",
    description="Back-office API mirroring custody wallets and reconciling their transaction history.",
    version=config.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if config.enable_metrics:
    Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/docs", "/openapi.json"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="inprogress",
        inprogress_labels=True,
    ).instrument(app)


def route_template(request: Request) -> str:
    """Matched route path (/api/wallets/{user_id}/{wallet_id}) so ids stay out of metric labels."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"
    # Probes are logged at debug
    log = logger.debug if request.url.path in ("/health", "/metrics") else logger.info

    log(f"HTTP {request.method} {request.url.path} from {client_ip}")

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"HTTP {request.method} {request.url.path} failed after {duration:.3f}s: {str(e)}"
        )
        api_requests_total.labels(
            method=request.method, endpoint=route_template(request), status_code=500
        ).inc()
        record_error(type(e).__name__, "http_middleware")
        raise

    duration = time.time() - start_time
    endpoint = route_template(request)
    log(
        f"HTTP {request.method} {request.url.path} completed - Status: {response.status_code}, "
        f"Duration: {duration:.3f}s"
    )
    api_requests_total.labels(
        method=request.method, endpoint=endpoint, status_code=response.status_code
    ).inc()
    api_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(duration)
    return response


# Wallet routes first: /stats and /{user_id}/create must win over /{user_id}/{wallet_id}
app.include_router(wallet_router)
app.include_router(transaction_router)


async def probe_database(pool) -> Dict[str, Any]:
    if pool is None:
        return {"database_connected": False, "database_pool_size": 0, "database_pool_used": 0}

    try:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except Exception as e:
        database_health_status.set(0)
        return {
            "database_connected": False,
            "database_pool_size": 0,
            "database_pool_used": 0,
            "database_error": str(e),
        }

    update_pool_metrics(pool)
    database_health_status.set(1)
    return {
        "database_connected": True,
        "database_pool_size": pool.get_size(),
        "database_pool_used": pool.get_size() - pool.get_idle_size(),
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Database connectivity and provider configuration.

    degraded means the database is reachable but no Bridge API key is set, so
    history syncs return nothing.
    """
    database = await probe_database(getattr(app.state, "pool", None))

    if not database["database_connected"]:
        status = "unhealthy"
    elif not config.bridge_configured:
        status = "degraded"
    else:
        status = "ok"

    return {
        "status": status,
        "version": config.app_version,
        "environment": config.environment,
        "bridge_configured": config.bridge_configured,
        **database,
    }


if config.enable_metrics:

    @app.get("/metrics", tags=["Monitoring"])
    def metrics():
        """Prometheus metrics endpoint"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Wallet Sync Service",
        "version": config.app_version,
        "environment": config.environment,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if config.enable_metrics else None,
    }
