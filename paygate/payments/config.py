"""
Payments config: typed wrapper over paygate.core.config for receiver and cluster.
"""
from __future__ import annotations

from paygate.core.config import settings
from paygate.ledger.network import normalize_network
from paygate.payments.models import ReceiverConfig


def resolve_receiver_config() -> ReceiverConfig:
    """
    Snapshot of the receiver settings. Raises UnsupportedNetworkError for an
    unknown SOLANA_NETWORK; an empty RECEIVER_PUBKEY is left for the verifier
    to report as MISCONFIGURED_RECEIVER.
    """
    return ReceiverConfig(
        network=normalize_network(settings.solana_network),
        receiver_address=settings.receiver_pubkey or None,
        rpc_url=settings.solana_rpc_url,
    )


def get_finality_wait_seconds() -> float:
    return settings.finality_wait_seconds


def get_default_feature() -> str:
    return settings.default_feature
