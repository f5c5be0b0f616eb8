import asyncio
import datetime
import secrets
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from walletsync.domain.exceptions import BridgeAPIError, BridgeNotConfiguredError
from walletsync.domain.ledger.entity import (
    BridgeTransactionHistory,
    BridgeWallet,
    BridgeWalletList,
)
from walletsync.domain.ledger.repository import LedgerProvider
from walletsync.shared.monitoring.logging import LoggerMixin, log_provider_operation
from walletsync.shared.monitoring.metrics import (
    MetricsContext,
    record_provider_retry,
)

DEFAULT_BASE_URL = "https://api.sandbox.bridge.xyz/v0"
MAX_BACKOFF_SECONDS = 10.0


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry number attempt+1: 1, 2, 4, 8, then 10."""
    return min(1.0 * (2 ** attempt), MAX_BACKOFF_SECONDS)


class BridgeLedgerClient(LedgerProvider, LoggerMixin):
    """
    HTTP client for the Bridge custody API.

    Wallet history is fetched with a single request and never retried.
    Customer wallet calls go through _request, which retries 5xx responses
    and transport errors with exponential backoff and never retries 4xx.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

        if not self.is_configured:
            self.logger.warning(
                "Bridge API key not configured - wallet history will be empty and created wallets are local mocks"
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Api-Key": self.api_key, "accept": "application/json"}
        if extra:
            headers.update(extra)
        return headers

    def _masked_key(self) -> str:
        return f"{self.api_key[:10]}..." if self.api_key else ""

    async def get_wallet_history(
        self, bridge_wallet_id: str, limit: int = 100, updated_after_ms: Optional[int] = None
    ) -> BridgeTransactionHistory:
        if not self.is_configured:
            self.logger.info(
                f"Bridge API key not configured - returning empty history for wallet {bridge_wallet_id}"
            )
            return BridgeTransactionHistory(count=0, data=[])

        params: Dict[str, Any] = {"limit": str(limit)}
        if updated_after_ms:
            params["updated_after_ms"] = str(updated_after_ms)

        start_time = time.time()
        self.logger.info(
            f"Fetching wallet history - Wallet: {bridge_wallet_id}, Limit: {limit}, Updated after: {updated_after_ms}",
            extra=log_provider_operation("get_wallet_history", bridge_wallet_id=bridge_wallet_id),
        )

        try:
            with MetricsContext("get_wallet_history", "provider"):
                response = await self.client.get(
                    f"/wallets/{bridge_wallet_id}/history",
                    params=params,
                    headers=self._headers(),
                )
                if response.is_error:
                    raise BridgeAPIError(
                        f"Bridge API error: {response.status_code} {response.reason_phrase}",
                        status_code=response.status_code,
                    )
                history = BridgeTransactionHistory.model_validate(response.json())

            self.logger.info(
                f"Wallet history fetched - Wallet: {bridge_wallet_id}, Count: {history.count}, "
                f"Records: {len(history.data)}, Duration: {time.time() - start_time:.3f}s"
            )
            return history

        except Exception as e:
            self.logger.error(
                f"Error fetching transaction history for wallet {bridge_wallet_id}: {str(e)}"
            )
            raise

    async def list_customer_wallets(self, customer_id: str) -> BridgeWalletList:
        if not self.is_configured:
            raise BridgeNotConfiguredError()

        data = await self._request("GET", f"/customers/{customer_id}/wallets", "list_customer_wallets")
        wallets = BridgeWalletList.model_validate(data or {})
        self.logger.info(f"Found {wallets.count} wallets in Bridge for customer {customer_id}")
        return wallets

    async def create_wallet(self, customer_id: str, chain: str) -> BridgeWallet:
        idempotency_key = str(uuid.uuid4())

        if not self.is_configured:
            now = datetime.datetime.now(datetime.timezone.utc).isoformat()
            address = (
                secrets.token_urlsafe(24) if chain == "solana" else f"0x{secrets.token_hex(20)}"
            )
            self.logger.info(f"Bridge API key not configured - generating mock {chain} wallet")
            return BridgeWallet(
                id=f"mock_wallet_{idempotency_key[:8]}",
                chain=chain,
                address=address,
                tags=[],
                created_at=now,
                updated_at=now,
            )

        self.logger.info(
            f"Creating Bridge wallet - Customer: {customer_id}, Chain: {chain}, Idempotency key: {idempotency_key}"
        )
        data = await self._request(
            "POST",
            f"/customers/{customer_id}/wallets",
            "create_wallet",
            json={"chain": chain},
            headers={"Idempotency-Key": idempotency_key},
        )
        return BridgeWallet.model_validate(data)

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: Optional[dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            start_time = time.time()
            self.logger.info(
                f"Bridge API request (attempt {attempt + 1}) - {method} {path}, Api-Key: {self._masked_key()}"
            )
            try:
                with MetricsContext(operation, "provider"):
                    response = await self.client.request(
                        method, path, json=json, headers=self._headers(headers)
                    )
                    payload = self._parse_body(response)

                    if response.is_error:
                        message = (
                            payload.get("message") if isinstance(payload, dict) else None
                        ) or f"HTTP {response.status_code}"
                        raise BridgeAPIError(
                            f"Bridge API error: {response.status_code} {response.reason_phrase}. {message}",
                            status_code=response.status_code,
                            details=payload,
                        )

                self.logger.info(
                    f"Bridge API request successful - {method} {path}, Status: {response.status_code}, "
                    f"Duration: {time.time() - start_time:.3f}s"
                )
                return payload

            except BridgeAPIError as e:
                if e.is_client_error:
                    self.logger.error(f"Bridge API client error, not retrying - {method} {path}: {str(e)}")
                    raise
                last_error = e
            except httpx.HTTPError as e:
                last_error = e

            self.logger.error(
                f"Bridge API request failed (attempt {attempt + 1}) - {method} {path}: {str(last_error)}"
            )
            if attempt < self.max_retries:
                delay = backoff_delay(attempt)
                self.logger.info(f"Retrying Bridge API request in {delay:.0f}s")
                record_provider_retry(operation)
                await asyncio.sleep(delay)

        self.logger.error(f"Bridge API request failed after all retries - {method} {path}")
        if isinstance(last_error, BridgeAPIError):
            raise last_error
        raise BridgeAPIError(
            f"Bridge API request failed: {str(last_error)}", status_code=0
        ) from last_error

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BridgeAPIError(
                f"Invalid JSON response from Bridge API: {response.text[:200]}",
                status_code=response.status_code,
            ) from e
