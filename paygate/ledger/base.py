"""
Ledger query interface consumed by the builder and the verifier.
Implemented by SolanaRpcClient; tests pass in-memory fakes.
"""
from abc import ABC, abstractmethod
from typing import Any

COMMITMENT_CONFIRMED = "confirmed"
MAX_SUPPORTED_TRANSACTION_VERSION = 0


class LedgerLookup(ABC):
    """Read-only view of the ledger."""

    @abstractmethod
    def get_parsed_transaction(
        self,
        signature: str,
        commitment: str = COMMITMENT_CONFIRMED,
        max_supported_version: int = MAX_SUPPORTED_TRANSACTION_VERSION,
    ) -> dict[str, Any] | None:
        """Return the jsonParsed transaction, or None when the node does not know it."""
        pass

    @abstractmethod
    def get_account_info(
        self,
        address: str,
        commitment: str = COMMITMENT_CONFIRMED,
    ) -> dict[str, Any] | None:
        """Return account info, or None when the account does not exist."""
        pass

    @abstractmethod
    def get_latest_blockhash(self, commitment: str = COMMITMENT_CONFIRMED) -> str:
        """Recent blockhash, used to serialize a built transaction for a wallet."""
        pass

    def close(self) -> None:
        pass
