"""
Application configuration.
All settings are loaded from environment variables (or .env).
Local defaults point at SQLite and a localhost Redis so the package imports without a .env.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    RECEIVER_PUBKEY has no usable default: while it is empty every verification
    ends with MISCONFIGURED_RECEIVER.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated origins. Empty = default list in paygate.main.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str = "sqlite:///./paygate.db"

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # ===========================================
    # SOLANA
    # ===========================================
    # devnet / mainnet-beta / testnet, aliases accepted (see paygate.ledger.network)
    solana_network: str = "devnet"
    # Base58 address that must receive the payment
    receiver_pubkey: str = ""
    # Custom RPC endpoint; empty = public endpoint of the cluster
    solana_rpc_url: str | None = None

    # ===========================================
    # PREMIUM ACCESS WORKFLOW
    # ===========================================
    finality_wait_seconds: float = 5.0
    default_feature: str = "premium-access"
    default_memo: str = "Premium Feature"

    # ===========================================
    # WORKERS & RETRIES
    # ===========================================
    celery_task_retry_delay: int = 5
    celery_task_retry_backoff_max: int = 60
    celery_task_max_retries: int = 3

    # ===========================================
    # HTTP CLIENTS
    # ===========================================
    http_client_timeout: float = 10.0

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("receiver_pubkey", "solana_network")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("solana_rpc_url")
    @classmethod
    def empty_rpc_url_is_none(cls, v: str | None) -> str | None:
        """Treat SOLANA_RPC_URL= (empty) as unset."""
        if v is None:
            return None
        return v.strip() or None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
