import logging
import os
import sys
from typing import Any, Dict


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
LOG_DIR = "logs"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Route records to stdout, logs/app.log and (errors only) logs/error.log
    """
    os.makedirs(LOG_DIR, exist_ok=True)
    level = getattr(logging, log_level.upper())

    # uvicorn installs its own handlers on the root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [
        (logging.StreamHandler(sys.stdout), level),
        (logging.FileHandler(os.path.join(LOG_DIR, "app.log"), mode="a"), level),
        (logging.FileHandler(os.path.join(LOG_DIR, "error.log"), mode="a"), logging.ERROR),
    ]
    for handler, handler_level in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # httpx logs every request at INFO, including query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """
    Mixin giving classes a logger named after the class
    """

    @property
    def logger(self):
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger


def log_sync_operation(operation: str, wallet_id: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for wallet reconciliation steps
    """
    return {
        "operation": operation,
        "wallet_id": wallet_id,
        "log_event": "sync_operation",
        **kwargs,
    }


def log_database_operation(operation: str, table: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for database operations
    """
    return {
        "operation": operation,
        "table": table,
        "log_event": "database_operation",
        **kwargs,
    }


def log_provider_operation(operation: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for calls to the custody provider
    """
    return {"operation": operation, "log_event": "provider_operation", **kwargs}
