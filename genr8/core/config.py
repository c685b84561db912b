"""
Application configuration.
All settings are loaded from environment variables (or .env).
Provider keys and wallet secrets have no defaults that would work in production.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: infrastructure URLs have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma separated origins. Empty = default list in genr8.main.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # GENERATION PROVIDERS (kie.ai)
    # ===========================================
    kie_api_url: str = "https://api.kie.ai/api/v1"
    kie_ai_api_key: str = ""
    image_4o_api_key: str = ""
    ideogram_api_key: str = ""
    qwen_api_key: str = ""
    veo_ai_api_key: str = ""  # falls back to kie_ai_api_key
    kie_callback_url: str = ""
    provider_timeout: float = 30.0

    # ===========================================
    # MODEL PRICES (USD per request)
    # ===========================================
    price_gpt_image: float = 0.042
    price_ideogram: float = 0.066
    price_qwen: float = 0.03
    price_nano_banana: float = 0.30
    price_sora: float = 0.21
    price_veo: float = 0.36
    price_grok_imagine: float = 0.25
    price_sora_pro: float = 0.35

    # ===========================================
    # SOLANA
    # ===========================================
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_rpc_timeout: float = 15.0
    solana_confirm_timeout: float = 60.0
    solana_confirm_poll_interval: float = 2.0

    # ===========================================
    # PAYMENTS
    # ===========================================
    payment_token_mint: str = "4BwTM7JvCXnMHPoxfPBoNjxYSbQpVQUMPtK5KNGppump"
    usdc_mint: str = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
    payment_wallet_address: str = "BXm4a7VzW3GWH2MkUqFTc5uM3XrQDvVbYA3KbXoUvgez"
    token_decimals: int = 6
    usdc_decimals: int = 6
    payment_currency: str = "USDC"
    payment_network: str = "Solana"
    payment_realm: str = "GENR8"
    # Check the token transfer inside the transaction, not only that it succeeded
    payment_verify_transfer: bool = True
    payment_amount_tolerance: float = 0.2
    payment_tracking_ttl_hours: int = 24

    # ===========================================
    # BUYBACK
    # ===========================================
    buyback_fee_rate: float = 0.10
    buyback_min_native: float = 0.001
    buyback_execution_key: str = ""
    buyback_wallet_public_key: str = ""
    buyback_wallet_private_key: str = ""
    pumpportal_api_url: str = "https://pumpportal.fun/api/trade-local"
    buyback_slippage: int = 15
    buyback_priority_fee: float = 0.005
    buyback_pool: str = "auto"
    buyback_request_timeout: float = 10.0
    buyback_schedule_minutes: int = 30

    # ===========================================
    # PRICE FEEDS
    # ===========================================
    dexscreener_api_url: str = "https://api.dexscreener.com/latest/dex/tokens"
    jupiter_price_url: str = "https://price.jup.ag/v4/price"
    wrapped_sol_mint: str = "So11111111111111111111111111111111111111112"
    price_feed_timeout: float = 3.0
    sol_price_fallback_usd: float = 170.0
    gen_price_override_usd: float | None = None
    gen_price_min_usd: float = 0.0
    gen_price_fallback_usd: float = 0.00007
    price_cache_seconds: int = 30

    # ===========================================
    # REFUNDS
    # ===========================================
    refund_wallet_public_key: str = ""
    refund_wallet_private_key: str = ""
    refund_auto_enqueue: bool = True
    refund_batch_size: int = 20

    # ===========================================
    # STORAGE (re-hosted media)
    # ===========================================
    storage_base_path: str = "/data/generated"
    media_public_base_url: str = "http://localhost:8000/media"
    rehost_timeout: float = 30.0

    # ===========================================
    # POLLING
    # ===========================================
    poll_interval_seconds: float = 5.0
    poll_timeout_seconds: float = 300.0

    # ===========================================
    # ADMIN API
    # ===========================================
    admin_api_key: str | None = None

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # ===========================================
    # STATE MANAGEMENT
    # ===========================================
    idempotency_ttl: int = 120

    @field_validator("buyback_fee_rate")
    @classmethod
    def validate_fee_rate(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("buyback_fee_rate must be between 0 and 1")
        return v

    @field_validator("media_public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
