"""
Ledger access: cluster selection, query interface, RPC client, parsed records.
"""
from .base import (
    COMMITMENT_CONFIRMED,
    MAX_SUPPORTED_TRANSACTION_VERSION,
    LedgerLookup,
)
from .network import (
    USDC_DECIMALS,
    canonical_address,
    normalize_network,
    parse_address,
    rpc_url_for,
    usdc_mint_for,
)
from .records import AccountKey, TokenBalance, TransactionRecord
from .rpc import SolanaRpcClient

__all__ = [
    "COMMITMENT_CONFIRMED",
    "MAX_SUPPORTED_TRANSACTION_VERSION",
    "LedgerLookup",
    "USDC_DECIMALS",
    "canonical_address",
    "normalize_network",
    "parse_address",
    "rpc_url_for",
    "usdc_mint_for",
    "AccountKey",
    "TokenBalance",
    "TransactionRecord",
    "SolanaRpcClient",
]
