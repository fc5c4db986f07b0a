"""
Application configuration.

This module provides centralized configuration management using Pydantic.
Nested sections are read from the environment with ``__`` as delimiter,
e.g. ``DATABASE__URL`` or ``REPORTING__CACHE_ENABLED``.
"""

from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = Field(default="sqlite:///./hubmarket.db")
    echo: bool = False
    pool_pre_ping: bool = True

class RedisConfig(BaseModel):
    """Redis configuration."""
    url: str = Field(default="redis://localhost:6379")
    password: Optional[str] = None
    prefix: str = Field(default="hubmarket:")

class ReportingConfig(BaseModel):
    """Reporting configuration."""
    cache_enabled: bool = False
    cache_ttl: int = Field(default=300, description="Seconds a cached daily trend stays valid")
    daily_key_prefix: str = "daily:"
    max_entries_page: int = 500

class StorageConfig(BaseModel):
    """Blob storage configuration."""
    bucket: str = Field(default="hubmarket-proofs")
    signed_url_ttl: int = Field(default=86400)  # 24 hours

class ServerConfig(BaseModel):
    """Server configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    cors_origins: list[str] = Field(default=["*"])

class Settings(BaseSettings):
    """Application settings."""
    database: DatabaseConfig = DatabaseConfig()
    redis: RedisConfig = RedisConfig()
    reporting: ReportingConfig = ReportingConfig()
    storage: StorageConfig = StorageConfig()
    server: ServerConfig = ServerConfig()

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"
        case_sensitive = False
        extra = "ignore"

# Create global settings instance
settings = Settings()

# Export individual configs for convenience
database_config = settings.database
redis_config = settings.redis
reporting_config = settings.reporting
storage_config = settings.storage
server_config = settings.server
