"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The storage backend is a deployment property: OBJECT_STORAGE_BACKEND picks
local disk, a remote bucket, or in-memory storage once per process.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackendKind(str, Enum):
    """Physical storage behind the /objects/ namespace."""
    LOCAL = "local"
    REMOTE = "remote"
    MEMORY = "memory"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Item Catalog API"
    api_version: str = "v1"

    # Anthropic Configuration
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Without it, items get placeholder attributes."
    )
    anthropic_fast_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Model tried first for every photo. Cheap and usually good enough."
    )
    anthropic_premium_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used when the fast model reports low confidence."
    )
    anthropic_max_tokens: int = Field(
        default=1000,
        description="Max tokens for analysis replies. The JSON payload is small."
    )
    anthropic_temperature: float = Field(
        default=0.2,
        description="Low temperature keeps catalog attributes consistent."
    )
    analysis_confidence_threshold: float = Field(
        default=0.4,
        description="Fast-model confidence below this escalates to the premium model."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="CATALOG",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="INVENTORY",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Object Storage Configuration
    object_storage_backend: StorageBackendKind = Field(
        default=StorageBackendKind.LOCAL,
        description="local (disk), remote (bucket via local proxy) or memory (dev/test)"
    )
    local_storage_dir: str = Field(
        default="uploads",
        description="Root directory for the local backend. Use a persistent volume in production."
    )
    private_object_dir: str = Field(
        default="",
        description="Remote backend root as /<bucket>/<prefix>"
    )
    object_storage_endpoint_url: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint for the remote bucket"
    )
    object_storage_access_key_id: str = Field(
        default="",
        description="Access key for the remote bucket"
    )
    object_storage_secret_access_key: str = Field(
        default="",
        description="Secret key for the remote bucket"
    )
    object_storage_region: str = Field(
        default="auto",
        description="Region for the remote bucket"
    )
    storage_proxy_url: str = Field(
        default="http://127.0.0.1:1106",
        description="Local trusted proxy that signs direct-access URLs"
    )
    signed_url_ttl_seconds: int = Field(
        default=900,
        description="Lifetime of signed upload URLs"
    )
    object_cache_ttl_seconds: int = Field(
        default=3600,
        description="max-age sent with served images"
    )
    image_category: str = Field(
        default="items",
        description="Category segment used in storage keys and /objects/ paths"
    )

    # Application Behavior
    max_images_per_item: int = Field(
        default=10,
        description="Maximum images per item upload"
    )
    max_image_size_mb: int = Field(
        default=10,
        description="Maximum size of a single image in MB"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_image_size_bytes(self) -> int:
        return self.max_image_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on which backends are selected.
        """
        missing = []

        # Snowflake only required if not in mock mode
        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if (
                not self.snowflake_password
                and not self.snowflake_private_key_path
                and not self.snowflake_private_key_base64
            ):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        # The remote backend needs to know which bucket to use
        if self.object_storage_backend == StorageBackendKind.REMOTE:
            if not self.private_object_dir:
                missing.append("PRIVATE_OBJECT_DIR")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
