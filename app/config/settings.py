"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    DEFAULT_CONTENT_CONTRACT_ADDRESS,
    DEFAULT_MARKETPLACE_CONTRACT_ADDRESS,
    FIRST_CONTENT_BLOCK,
    GLOBAL_SYNC_KEY,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(
        default=10, ge=1, description="Maximum pooled database connections"
    )
    database_pool_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for a pooled connection"
    )

    # Blockchain RPC
    rpc_url: str
    rpc_timeout: float = Field(
        default=30.0, gt=0, description="Timeout for a single RPC call in seconds"
    )
    rpc_max_workers: int = Field(
        default=8, ge=1, description="Thread pool size for blocking web3 calls"
    )

    # Contracts
    content_contract_address: str = DEFAULT_CONTENT_CONTRACT_ADDRESS
    marketplace_contract_address: str = DEFAULT_MARKETPLACE_CONTRACT_ADDRESS
    genesis_block: int = Field(
        default=FIRST_CONTENT_BLOCK,
        ge=0,
        description="First block of the content contract",
    )

    # Event sync
    sync_key: str = GLOBAL_SYNC_KEY
    sync_max_block_range: int = Field(
        default=500000, ge=1, description="Max blocks fetched per sync call"
    )
    sync_interval_seconds: float = Field(default=30.0, gt=0)
    sync_catchup_interval_seconds: float = Field(default=5.0, gt=0)

    # Marketplace listing sync
    listing_sync_interval_seconds: float = Field(default=300.0, gt=0)
    listing_batch_size: int = Field(default=5, ge=1)
    listing_batch_delay_seconds: float = Field(default=0.5, ge=0)
    listing_read_limit: int = Field(
        default=10, ge=1, description="Listings read per token"
    )

    # Content cache
    content_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    content_fetch_timeout: float = Field(default=15.0, gt=0)
    prewarm_batch_size: int = Field(default=5, ge=1)
    prewarm_batch_delay_seconds: float = Field(default=0.5, ge=0)

    # Block timestamp cache
    block_prewarm_batch_size: int = Field(default=10, ge=1)
    block_prewarm_batch_delay_seconds: float = Field(default=0.2, ge=0)

    # Render queue
    render_batch_size: int = Field(default=5, ge=1)
    render_reschedule_delay_seconds: float = Field(default=2.0, ge=0)
    render_interval_seconds: float = Field(default=60.0, gt=0)
    render_output_dir: str = "og-images"
    render_command: str | None = None
    render_timeout: float = Field(default=60.0, gt=0)

    # HTTP
    http_host: str = "0.0.0.0"
    http_port: int = Field(default=3000, ge=1, le=65535)
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )
    admin_secret: str | None = None

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    log_file: str | None = "logs/indexer.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('content_contract_address', 'marketplace_contract_address')
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Validate contract address format."""
        if not v.startswith('0x') or len(v) != 42:
            raise ValueError(
                f'Invalid contract address: {v}. '
                'Must start with 0x and be 42 characters long.'
            )
        try:
            int(v[2:], 16)
        except ValueError as exc:
            raise ValueError(f'Invalid contract address format: {v}') from exc
        return v.lower()

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql+asyncpg://', 'sqlite+aiosqlite://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql+asyncpg:// '
                'or sqlite+aiosqlite://'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    @property
    def default_checkpoint_block(self) -> int:
        """Checkpoint used when a sync stream has never run."""
        return max(0, self.genesis_block - 1)


# Global settings instance
settings = Settings()
