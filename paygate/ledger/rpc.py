"""
Solana JSON-RPC client wrapper using httpx sync client.
Provides sync interface for Celery workers (no event loop issues).
"""
import itertools
import logging
import time
from typing import Any

import httpx
import pybreaker

from paygate.core.config import settings
from paygate.core.errors import LedgerQueryError, LedgerRequestRejected
from paygate.ledger.base import (
    COMMITMENT_CONFIRMED,
    MAX_SUPPORTED_TRANSACTION_VERSION,
    LedgerLookup,
)
from paygate.utils.metrics import (
    ledger_rpc_requests_total,
    ledger_rpc_request_duration_seconds,
)

logger = logging.getLogger(__name__)

JSONRPC_INVALID_PARAMS = -32602


class SolanaRpcClient(LedgerLookup):
    """
    Sync Solana RPC client for Celery workers and API routes.
    Every transport or node error surfaces as LedgerQueryError (retryable).
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout if timeout is not None else settings.http_client_timeout
        self._breaker = breaker
        self._client = http_client
        self._ids = itertools.count(1)

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _record_request(self, method: str, status: str, duration: float) -> None:
        ledger_rpc_requests_total.labels(method=method, status=status).inc()
        ledger_rpc_request_duration_seconds.labels(method=method).observe(duration)

    def _call(self, method: str, params: list[Any]) -> Any:
        if self._breaker is None:
            return self._rpc(method, params)
        try:
            return self._breaker.call(self._rpc, method, params)
        except pybreaker.CircuitBreakerError as e:
            raise LedgerQueryError(f"Solana RPC circuit open: {method}") from e

    def _rpc(self, method: str, params: list[Any]) -> Any:
        """Make one JSON-RPC call and return its `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        start = time.time()
        try:
            resp = self.client.post(self._endpoint, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self._record_request(method, "error", time.time() - start)
            logger.warning(
                "ledger_rpc_transport_error",
                extra={"method": method, "error": str(e)},
            )
            raise LedgerQueryError(f"Solana RPC {method} failed: {e}") from e

        error = body.get("error")
        if error:
            self._record_request(method, "error", time.time() - start)
            code = error.get("code")
            message = error.get("message", "Unknown error")
            logger.warning(f"Solana RPC error: {method} -> {code}: {message}")
            exc_cls = LedgerRequestRejected if code == JSONRPC_INVALID_PARAMS else LedgerQueryError
            raise exc_cls(f"{code}: {message}", code=code, detail={"method": method})

        self._record_request(method, "success", time.time() - start)
        return body.get("result")

    def get_parsed_transaction(
        self,
        signature: str,
        commitment: str = COMMITMENT_CONFIRMED,
        max_supported_version: int = MAX_SUPPORTED_TRANSACTION_VERSION,
    ) -> dict[str, Any] | None:
        return self._call(
            "getTransaction",
            [
                signature,
                {
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": max_supported_version,
                    "encoding": "jsonParsed",
                },
            ],
        )

    def get_account_info(
        self,
        address: str,
        commitment: str = COMMITMENT_CONFIRMED,
    ) -> dict[str, Any] | None:
        result = self._call(
            "getAccountInfo",
            [address, {"commitment": commitment, "encoding": "base64"}],
        )
        return (result or {}).get("value")

    def get_latest_blockhash(self, commitment: str = COMMITMENT_CONFIRMED) -> str:
        result = self._call("getLatestBlockhash", [{"commitment": commitment}])
        try:
            return result["value"]["blockhash"]
        except (TypeError, KeyError) as e:
            raise LedgerQueryError("Malformed getLatestBlockhash response") from e
