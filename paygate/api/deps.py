from typing import Iterator

from paygate.ledger.base import LedgerLookup
from paygate.ledger.network import rpc_url_for
from paygate.ledger.rpc import SolanaRpcClient
from paygate.payments.config import resolve_receiver_config
from paygate.payments.models import ReceiverConfig
from paygate.services.circuit_breaker import get_ledger_rpc_breaker


def get_receiver_config() -> ReceiverConfig:
    return resolve_receiver_config()


def get_ledger() -> Iterator[LedgerLookup]:
    """Per-request RPC client for the configured cluster."""
    config = resolve_receiver_config()
    client = SolanaRpcClient(rpc_url_for(config.network, config.rpc_url), breaker=get_ledger_rpc_breaker())
    try:
        yield client
    finally:
        client.close()
