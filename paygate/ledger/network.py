"""
Solana cluster selection: alias normalization, public RPC endpoints, USDC mints.
Also canonical address parsing shared by the builder and the verifier.
"""
from __future__ import annotations

from typing import Literal

from solders.pubkey import Pubkey

from paygate.core.errors import UnsupportedNetworkError

Network = Literal["devnet", "mainnet-beta", "testnet"]

DEVNET: Network = "devnet"
MAINNET_BETA: Network = "mainnet-beta"
TESTNET: Network = "testnet"

_ALIASES: dict[str, Network] = {
    "": DEVNET,
    "devnet": DEVNET,
    "solana-devnet": DEVNET,
    "mainnet-beta": MAINNET_BETA,
    "mainnet": MAINNET_BETA,
    "solana": MAINNET_BETA,
    "solana-mainnet": MAINNET_BETA,
    "testnet": TESTNET,
    "solana-testnet": TESTNET,
}

PUBLIC_RPC_URLS: dict[Network, str] = {
    DEVNET: "https://api.devnet.solana.com",
    MAINNET_BETA: "https://api.mainnet-beta.solana.com",
    TESTNET: "https://api.testnet.solana.com",
}

USDC_DECIMALS = 6
# No USDC mint on testnet.
USDC_MINTS: dict[Network, str] = {
    DEVNET: "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
    MAINNET_BETA: "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
}


def normalize_network(value: str | None) -> Network:
    """Map a network name or alias to devnet / mainnet-beta / testnet. Empty means devnet."""
    normalized = (value or "").strip().lower()
    try:
        return _ALIASES[normalized]
    except KeyError:
        raise UnsupportedNetworkError(f"Unsupported Solana network: {value}") from None


def rpc_url_for(network: str, custom_url: str | None = None) -> str:
    if custom_url:
        return custom_url
    return PUBLIC_RPC_URLS[normalize_network(network)]


def usdc_mint_for(network: str) -> Pubkey:
    """USDC mint of the cluster; raises UnsupportedNetworkError where there is none."""
    cluster = normalize_network(network)
    mint = USDC_MINTS.get(cluster)
    if mint is None:
        raise UnsupportedNetworkError(f"USDC transfers are not supported on Solana {cluster}")
    return Pubkey.from_string(mint)


def parse_address(value: str | None) -> Pubkey:
    """Parse a base58 address. Raises ValueError on anything that is not a 32-byte key."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("empty address")
    return Pubkey.from_string(value.strip())


def canonical_address(value: str | None) -> str:
    return str(parse_address(value))
