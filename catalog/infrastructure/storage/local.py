"""
Local filesystem storage backend.

Objects live under a single root directory (./uploads in development, a
mounted volume in production). Keys map directly to relative paths:
items/<id>.jpg is stored at <root>/items/<id>.jpg.

Every key is resolved to an absolute path and checked to lie under the root
before the filesystem is touched, independent of any validation the caller
already did.
"""

import logging
from pathlib import Path
from typing import Iterator, Union

from ...core.errors import DirectUploadUnavailableError, ObjectNotFoundError, StorageError
from ...core.media.paths import resolve_under_root
from ...core.objects.backend import (
    DEFAULT_CHUNK_SIZE,
    ObjectStream,
    cache_control_header,
    content_type_for_key,
)

logger = logging.getLogger(__name__)


class LocalStorageBackend:
    """Stores objects as plain files under a root directory."""

    name = "local"

    def __init__(self, root: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._root = Path(root)
        self._chunk_size = chunk_size

        logger.info(
            "Initialized local storage backend",
            extra={"root": str(self._root)}
        )

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, key: str) -> Path:
        """Absolute location for key. Raises ObjectNotFoundError outside the root."""
        return resolve_under_root(self._root, key)

    async def save(self, key: str, data: bytes) -> None:
        """Write bytes to <root>/<key>, creating parent directories first."""
        path = self.resolve(key)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(
                "Failed to save object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to save object")

        logger.debug(
            "Saved object",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def exists(self, key: str) -> bool:
        try:
            path = self.resolve(key)
        except ObjectNotFoundError:
            return False
        return path.is_file()

    async def stream(self, key: str, cache_ttl_seconds: int) -> ObjectStream:
        path = self.resolve(key)

        try:
            size = path.stat().st_size
        except FileNotFoundError:
            raise ObjectNotFoundError()
        except OSError as e:
            logger.error(
                "Failed to stat object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to read object")

        if not path.is_file():
            raise ObjectNotFoundError()

        return ObjectStream(
            content_type=content_type_for_key(key),
            content_length=size,
            cache_control=cache_control_header(cache_ttl_seconds),
            chunks=self._iter_file(path, key),
        )

    async def signed_upload_url(self, key: str, ttl_seconds: int) -> str:
        raise DirectUploadUnavailableError()

    def _iter_file(self, path: Path, key: str) -> Iterator[bytes]:
        """
        Yield file contents in chunks.

        The file is opened on first iteration and closed when iteration
        ends for any reason, including the consumer going away.
        """
        try:
            with path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(self._chunk_size), b""):
                    yield chunk
        except OSError as e:
            # Headers are already on the wire; all we can do is stop.
            logger.error(
                "Error streaming object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Error streaming file")
