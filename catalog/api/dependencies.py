"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never build their own collaborators, so tests
swap any of them through app.dependency_overrides.

The storage backend is chosen once per process. get_storage_backend is
cached and first called from the application lifespan, so a bad storage
configuration shows up in the startup logs rather than on the first
upload.
"""

import logging
from functools import lru_cache
from typing import Annotated, Generator, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.catalog.analysis import ItemAnalyzer
from ..core.objects.backend import StorageBackend
from ..core.objects.retrieval import ObjectGateway
from ..core.objects.uploads import ImageUploadOrchestrator
from ..infrastructure.anthropic.client import AnthropicVisionClient, create_anthropic_client
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.items import ItemRepository, SnowflakeConfig
from ..infrastructure.storage.client import create_storage_backend

logger = logging.getLogger(__name__)

# Shared mock connection so data persists across requests in mock mode
_mock_snowflake_connection: Optional[MockSnowflakeConnection] = None


# ---------------------------------------------------------------------------
# Infrastructure Dependencies
# ---------------------------------------------------------------------------

@lru_cache()
def get_storage_backend() -> StorageBackend:
    """
    Provide the process-wide storage backend.

    Selection happens on the first call and never again; for tests, call
    get_storage_backend.cache_clear() or override the dependency.
    """
    settings = get_settings()
    backend = create_storage_backend(settings)

    logger.info(
        "Selected storage backend",
        extra={"backend": backend.name}
    )

    return backend


@lru_cache()
def get_vision_client() -> Optional[AnthropicVisionClient]:
    """Shared Anthropic client, or None when no API key is configured."""
    settings = get_settings()
    return create_anthropic_client(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_fast_model,
        max_tokens=settings.anthropic_max_tokens,
        temperature=settings.anthropic_temperature,
    )


def snowflake_config_from_settings(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_item_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[ItemRepository, None, None]:
    """
    Provide ItemRepository with database connection.

    This is a generator so the connection is closed after the request.
    In mock mode, the same connection is reused across requests so that
    items persist for the life of the process.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")

        yield ItemRepository(_mock_snowflake_connection)
    else:
        config = snowflake_config_from_settings(settings)

        with create_snowflake_connection(config=config) as conn:
            yield ItemRepository(conn)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_item_analyzer(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ItemAnalyzer:
    """
    Provide ItemAnalyzer.

    The analyzer is stateless, so a new one per request is fine; the
    underlying API client is shared.
    """
    return ItemAnalyzer(
        vision_client=get_vision_client(),
        fast_model=settings.anthropic_fast_model,
        premium_model=settings.anthropic_premium_model,
        confidence_threshold=settings.analysis_confidence_threshold,
    )


def get_upload_orchestrator(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> ImageUploadOrchestrator:
    return ImageUploadOrchestrator(
        storage=storage,
        category=settings.image_category,
        max_images=settings.max_images_per_item,
    )


def get_object_gateway(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> ObjectGateway:
    return ObjectGateway(
        storage=storage,
        cache_ttl_seconds=settings.object_cache_ttl_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageBackendDep = Annotated[StorageBackend, Depends(get_storage_backend)]
ItemRepositoryDep = Annotated[ItemRepository, Depends(get_item_repository)]
ItemAnalyzerDep = Annotated[ItemAnalyzer, Depends(get_item_analyzer)]
UploadOrchestratorDep = Annotated[ImageUploadOrchestrator, Depends(get_upload_orchestrator)]
ObjectGatewayDep = Annotated[ObjectGateway, Depends(get_object_gateway)]
