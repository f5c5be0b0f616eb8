from prometheus_client import Counter, Histogram, Gauge, Info
import time
from functools import wraps
from typing import Callable, Any
import asyncio

# API Request Metrics
api_requests_total = Counter(
    'api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code']
)

api_request_duration_seconds = Histogram(
    'api_request_duration_seconds',
    'API request duration in seconds',
    ['method', 'endpoint']
)

# Reconciliation Metrics
wallet_sync_runs_total = Counter(
    'wallet_sync_runs_total',
    'Total number of wallet transaction reconciliations',
    ['status']
)

wallet_sync_duration_seconds = Histogram(
    'wallet_sync_duration_seconds',
    'Time spent reconciling one wallet',
    ['status']
)

wallet_sync_transactions_fetched_total = Counter(
    'wallet_sync_transactions_fetched_total',
    'Provider transaction records seen during reconciliation'
)

wallet_sync_transactions_inserted_total = Counter(
    'wallet_sync_transactions_inserted_total',
    'Transactions inserted by reconciliation'
)

wallet_sync_conflicts_total = Counter(
    'wallet_sync_conflicts_total',
    'Inserts skipped because a concurrent run stored the row first'
)

transaction_history_query_duration_seconds = Histogram(
    'transaction_history_query_duration_seconds',
    'Time spent serving a wallet transaction history page'
)

# Provider (Bridge) Metrics
provider_operations_total = Counter(
    'provider_operations_total',
    'Total custody provider operations',
    ['operation', 'status']
)

provider_operation_duration_seconds = Histogram(
    'provider_operation_duration_seconds',
    'Custody provider operation duration',
    ['operation']
)

provider_retries_total = Counter(
    'provider_retries_total',
    'Retried custody provider requests',
    ['operation']
)

# Wallet Metrics
wallets_created_total = Counter(
    'wallets_created_total',
    'Total number of wallets provisioned',
    ['chain']
)

wallets_synced_total = Counter(
    'wallets_synced_total',
    'Wallets mirrored from the provider',
    ['result']
)

# Database Metrics
database_operations_total = Counter(
    'database_operations_total',
    'Total database operations',
    ['operation', 'table', 'status']
)

database_operation_duration_seconds = Histogram(
    'database_operation_duration_seconds',
    'Database operation duration',
    ['operation', 'table']
)

database_connection_pool_size = Gauge(
    'database_connection_pool_size',
    'Current database connection pool size'
)

database_connection_pool_used = Gauge(
    'database_connection_pool_used',
    'Current database connection pool used connections'
)

database_connection_pool_idle = Gauge(
    'database_connection_pool_idle',
    'Current database connection pool idle connections'
)

database_health_status = Gauge(
    'database_health_status',
    'Database health status (1=healthy, 0=unhealthy)'
)

# Cache Metrics
profile_cache_lookups_total = Counter(
    'profile_cache_lookups_total',
    'Caller profile cache lookups',
    ['result']
)

# System Metrics
app_info = Info(
    'app_info',
    'Application information'
)

# Error Metrics
errors_total = Counter(
    'errors_total',
    'Total number of errors',
    ['error_type', 'component']
)

# Decorators for automatic metrics collection

def track_time(metric: Histogram, labels: dict = None):
    """Decorator to track execution time"""
    def decorator(func: Callable) -> Callable:
        def observe(duration: float) -> None:
            if labels:
                metric.labels(**labels).observe(duration)
            else:
                metric.observe(duration)

        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                observe(time.time() - start_time)

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                observe(time.time() - start_time)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator

# Metrics collection functions

def record_sync_run(status: str, duration: float, fetched: int = 0, inserted: int = 0):
    """Record one reconciliation attempt"""
    wallet_sync_runs_total.labels(status=status).inc()
    wallet_sync_duration_seconds.labels(status=status).observe(duration)
    if fetched:
        wallet_sync_transactions_fetched_total.inc(fetched)
    if inserted:
        wallet_sync_transactions_inserted_total.inc(inserted)

def record_sync_conflict():
    """Record an insert lost to a concurrent reconciliation"""
    wallet_sync_conflicts_total.inc()

def record_provider_operation(operation: str, status: str, duration: float = None):
    """Record a custody provider operation"""
    provider_operations_total.labels(operation=operation, status=status).inc()
    if duration is not None:
        provider_operation_duration_seconds.labels(operation=operation).observe(duration)

def record_provider_retry(operation: str):
    """Record a retried provider request"""
    provider_retries_total.labels(operation=operation).inc()

def record_database_operation(operation: str, table: str, status: str, duration: float = None):
    """Record a database operation"""
    database_operations_total.labels(operation=operation, table=table, status=status).inc()
    if duration is not None:
        database_operation_duration_seconds.labels(operation=operation, table=table).observe(duration)

def record_wallet_created(chain: str):
    """Record wallet provisioning"""
    wallets_created_total.labels(chain=chain).inc()

def record_wallets_synced(new: int = 0, updated: int = 0):
    """Record wallets mirrored from the provider"""
    if new:
        wallets_synced_total.labels(result="new").inc(new)
    if updated:
        wallets_synced_total.labels(result="updated").inc(updated)

def record_profile_cache_lookup(hit: bool):
    """Record a caller profile cache lookup"""
    profile_cache_lookups_total.labels(result="hit" if hit else "miss").inc()

def record_error(error_type: str, component: str):
    """Record an error"""
    errors_total.labels(error_type=error_type, component=component).inc()

def set_app_info(version: str, environment: str):
    """Set application information"""
    app_info.info({
        'version': version,
        'environment': environment
    })

# Context managers for tracking operations

class MetricsContext:
    """Context manager timing an operation against one component"""

    def __init__(self, operation: str, component: str, table: str = "unknown"):
        self.operation = operation
        self.component = component
        self.table = table
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time

        if exc_type is None:
            status = "success"
        else:
            status = "error"
            record_error(exc_type.__name__, self.component)

        if self.component == "provider":
            record_provider_operation(self.operation, status, duration)
        elif self.component == "database":
            record_database_operation(self.operation, self.table, status, duration)
