"""
Configuration management using Pydantic Settings
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class DatabaseSettings(BaseSettings):
    """Order store configuration"""

    backend: str = Field(default="memory", description="Order store backend: 'memory' or 'sql'")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL, overrides the postgres_* fields")

    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_db: str = Field(default="swaproute_orders", description="Database name")
    postgres_user: str = Field(default="postgres", description="Database user")
    postgres_password: str = Field(default="postgres", description="Database password")

    pool_size: int = Field(default=20, description="Connection pool size")
    echo: bool = Field(default=False, description="Echo SQL statements")

    model_config = SettingsConfigDict(env_prefix="DB_")

    @property
    def async_postgres_url(self) -> str:
        """Construct async PostgreSQL connection URL"""
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def sqlalchemy_url(self) -> str:
        """URL handed to the SQL order repository"""
        return self.url or self.async_postgres_url


class RedisSettings(BaseSettings):
    """Redis status cache configuration"""

    enabled: bool = Field(default=False, description="Mirror status updates into Redis")
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, description="Redis port")
    redis_db: int = Field(default=0, description="Redis database")
    redis_password: Optional[str] = Field(default=None, description="Redis password")

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


class QueueSettings(BaseSettings):
    """Dispatch queue configuration"""

    concurrency: int = Field(default=10, ge=1, description="Maximum orders processed at once")
    rate_limit_max: int = Field(default=100, ge=1, description="Orders started per rate window")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0, description="Rate window length")

    model_config = SettingsConfigDict(env_prefix="QUEUE_")


class ExecutionSettings(BaseSettings):
    """Execution pipeline configuration"""

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    backoff_base: float = Field(default=2.0, gt=1, description="Exponential backoff base (seconds)")
    max_backoff_seconds: Optional[float] = Field(default=None, description="Backoff cap, None for uncapped")
    quote_timeout_seconds: float = Field(default=5.0, gt=0, description="Per-venue quote timeout")
    status_ttl_seconds: int = Field(default=3600, ge=1, description="TTL of cached status snapshots")

    model_config = SettingsConfigDict(env_prefix="EXECUTION_")


class VenueSettings(BaseSettings):
    """Simulated venue configuration"""

    latency_scale: float = Field(default=1.0, ge=0, description="Multiplier for simulated venue delays (0 = instant)")
    failure_rate: Optional[float] = Field(default=None, ge=0, le=1, description="Override of the settlement failure rate")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible quotes")

    model_config = SettingsConfigDict(env_prefix="VENUE_")


class APISettings(BaseSettings):
    """API server configuration"""

    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")
    api_reload: bool = Field(default=False, description="Enable auto-reload")
    api_workers: int = Field(default=1, description="Number of workers")

    cors_origins: list[str] = Field(default=["*"], description="CORS origins")

    model_config = SettingsConfigDict(env_prefix="API_")


class Settings(BaseSettings):
    """Main application settings"""

    app_name: str = Field(default="SwapRoute", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=True, description="Debug mode")

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default="logs/swaproute.log", description="Log file path")

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    venues: VenueSettings = Field(default_factory=VenueSettings)
    api: APISettings = Field(default_factory=APISettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__"
    )


# Global settings instance
settings = Settings()
