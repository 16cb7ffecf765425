"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from enum import StrEnum

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlacementPolicy(StrEnum):
    """Slot search strategy used by the slot allocator."""

    BREADTH_FIRST = "breadth_first"  # shallowest free slot anywhere in the subtree
    DEEPEST_IN_LEG = "deepest_in_leg"  # follow the preferred side only


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(default=10, ge=1)
    database_max_overflow: int = Field(default=20, ge=0)

    # Redis (request/response messaging)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/tree_service.log"

    # Placement
    placement_policy: PlacementPolicy = Field(
        default=PlacementPolicy.BREADTH_FIRST,
        description="Slot search strategy: breadth_first or deepest_in_leg",
    )
    placement_scan_max_depth: int = Field(
        default=64,
        ge=1,
        le=1024,
        description="Maximum number of levels scanned below the sponsor",
    )
    slot_claim_max_retries: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Search-and-claim attempts before reporting a conflict",
    )

    # Timeouts
    storage_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Upper bound for a single storage call"
    )
    membership_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Upper bound for membership lookups"
    )

    # RPC
    rpc_request_queue: str = "rpc:users"
    membership_request_queue: str = "rpc:membership"
    rpc_reply_prefix: str = "rpc:reply:"
    rpc_reply_ttl_seconds: int = Field(default=60, ge=1)
    rpc_poll_timeout_seconds: int = Field(default=5, ge=1)
    rpc_max_concurrency: int = Field(
        default=32, ge=1, description="Maximum requests handled concurrently"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            # DEBUG must be False in production
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.database_echo:
                logger.warning(
                    'DATABASE_ECHO is enabled in production. '
                    'Every statement will be written to the log.'
                )
        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        # Async engine needs the asyncpg driver
        if v.startswith('postgresql://'):
            v = 'postgresql+asyncpg://' + v[len('postgresql://'):]
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown LOG_LEVEL: {v}')
        return level


# Global settings instance
settings = Settings()
