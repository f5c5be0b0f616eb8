class WalletSyncError(Exception):
    """Base class for errors raised by this service."""


class ProfileNotFoundError(WalletSyncError):
    pass


class WalletNotFoundError(WalletSyncError):
    pass


class InvalidRequestError(WalletSyncError):
    """The request is well formed but cannot be served (e.g. KYC not completed)."""


class BridgeNotConfiguredError(WalletSyncError):
    def __init__(self, message: str = "Bridge API key not configured"):
        super().__init__(message)


class BridgeAPIError(WalletSyncError):
    """Non-2xx or unusable response from the custody provider."""

    def __init__(self, message: str, status_code: int = 0, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500
