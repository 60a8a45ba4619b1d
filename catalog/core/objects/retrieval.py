"""
Retrieval gateway: virtual path in, byte stream out.

A path that fails validation is reported exactly like a missing object.
Distinguishing "bad path" from "no such file" would tell a prober which
guesses got past the validator.
"""

import logging

from ..errors import ObjectNotFoundError
from ..media.paths import is_valid_object_path, object_key_from_path
from .backend import ObjectStream, StorageBackend

logger = logging.getLogger(__name__)


DEFAULT_CACHE_TTL_SECONDS = 3600


class ObjectGateway:
    """Maps inbound virtual paths to backend streams."""

    def __init__(
        self,
        storage: StorageBackend,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self._storage = storage
        self._cache_ttl_seconds = cache_ttl_seconds

    async def serve(self, object_path: str) -> ObjectStream:
        if not is_valid_object_path(object_path):
            logger.warning("Rejected object path", extra={"path": object_path[:200]})
            raise ObjectNotFoundError()

        key = object_key_from_path(object_path)

        if not await self._storage.exists(key):
            raise ObjectNotFoundError()

        return await self._storage.stream(key, self._cache_ttl_seconds)
