"""
Storage backend selection, plus an in-memory backend.

The process picks its backend exactly once, at startup, from
OBJECT_STORAGE_BACKEND:
- local: files under LOCAL_STORAGE_DIR (the default, and what development uses)
- remote: a bucket named by PRIVATE_OBJECT_DIR, signed URLs via the local proxy
- memory: a dict, for tests and throwaway demos

Mock mode stores objects in memory, enabling API testing without
touching disk or provisioning a bucket.
"""

import logging
from typing import Iterator

from ...config.settings import Settings, StorageBackendKind
from ...core.errors import DirectUploadUnavailableError, ObjectNotFoundError
from ...core.objects.backend import (
    DEFAULT_CHUNK_SIZE,
    ObjectStream,
    StorageBackend,
    cache_control_header,
    content_type_for_key,
)
from .local import LocalStorageBackend
from .proxy import SignedUrlProxy
from .remote import RemoteStorageBackend, RemoteStorageConfig, parse_object_dir

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageBackend:
    """
    In-memory storage for local development and tests.

    Not suitable for production: everything is lost on restart. There is
    nothing to sign against, so direct uploads are unavailable.
    """

    name = "memory"

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        # {key: bytes}
        self._objects: dict[str, bytes] = {}
        self._chunk_size = chunk_size
        logger.info("Initialized mock storage backend (in-memory)")

    @property
    def keys(self) -> list[str]:
        return sorted(self._objects)

    async def save(self, key: str, data: bytes) -> None:
        self._objects[key] = bytes(data)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def exists(self, key: str) -> bool:
        return key in self._objects

    async def stream(self, key: str, cache_ttl_seconds: int) -> ObjectStream:
        if key not in self._objects:
            raise ObjectNotFoundError()

        data = self._objects[key]
        return ObjectStream(
            content_type=content_type_for_key(key),
            content_length=len(data),
            cache_control=cache_control_header(cache_ttl_seconds),
            chunks=self._iter_bytes(data),
        )

    async def signed_upload_url(self, key: str, ttl_seconds: int) -> str:
        raise DirectUploadUnavailableError()

    def _iter_bytes(self, data: bytes) -> Iterator[bytes]:
        for offset in range(0, len(data), self._chunk_size):
            yield data[offset:offset + self._chunk_size]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_backend(settings: Settings) -> StorageBackend:
    """
    Create the storage backend named by settings.

    Raises ValueError when the remote backend is selected without a
    bucket to point at.
    """
    kind = settings.object_storage_backend

    if kind == StorageBackendKind.MEMORY:
        return MockStorageBackend()

    if kind == StorageBackendKind.LOCAL:
        return LocalStorageBackend(settings.local_storage_dir)

    if not settings.private_object_dir:
        raise ValueError("PRIVATE_OBJECT_DIR is required for the remote storage backend")

    bucket_name, prefix = parse_object_dir(settings.private_object_dir)
    config = RemoteStorageConfig(
        bucket_name=bucket_name,
        prefix=prefix,
        endpoint_url=settings.object_storage_endpoint_url,
        access_key_id=settings.object_storage_access_key_id,
        secret_access_key=settings.object_storage_secret_access_key,
        region=settings.object_storage_region,
    )
    signer = SignedUrlProxy(settings.storage_proxy_url)

    return RemoteStorageBackend(config, signer=signer)
