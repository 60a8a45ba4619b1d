"""
Storage backend contract.

The catalog stores image bytes in exactly one backend per process: the
local filesystem or a remote bucket. Both implement the same small
protocol, so upload and retrieval logic never know which one is active.

Streaming is split in two steps. stream() resolves the object and fixes
the response headers up front (content type, length, cache policy); the
returned ObjectStream then yields bytes. Once the first header has been
written to the client the headers are committed - a failure halfway
through the body can't turn the response into an error page any more.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Iterator, Optional, Protocol


DEFAULT_CHUNK_SIZE = 64 * 1024

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def content_type_for_key(key: str) -> str:
    """Content type from a key's file extension."""
    return _CONTENT_TYPES.get(PurePosixPath(key).suffix.lower(), "application/octet-stream")


def cache_control_header(ttl_seconds: int, private: bool = False) -> str:
    visibility = "private" if private else "public"
    return f"{visibility}, max-age={ttl_seconds}"


@dataclass
class ObjectStream:
    """
    A stored object ready to be sent to a client.

    chunks is a lazy iterator. A backend that opens its connection before
    the first chunk is read sets release, and whoever sends the stream
    must call close() once sending is over, whether it finished or not.
    """
    content_type: str
    content_length: int
    cache_control: str
    chunks: Iterator[bytes]
    release: Optional[Callable[[], None]] = None

    def close(self) -> None:
        """Release the underlying handle. Safe to call more than once."""
        if self.release is not None:
            self.release()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(self.content_length),
            "Cache-Control": self.cache_control,
        }

    def read_all(self) -> bytes:
        """Drain the stream into memory. Meant for small objects and tests."""
        try:
            return b"".join(self.chunks)
        finally:
            self.close()


class StorageBackend(Protocol):
    """
    Protocol for object storage backends.

    Using a protocol means the upload orchestrator and retrieval gateway
    don't know whether they talk to a disk, a bucket, or an in-memory
    dict. Keys are backend-relative ("items/<id>.jpg"), never virtual paths.
    """

    name: str

    async def save(self, key: str, data: bytes) -> None:
        """Store bytes under key, overwriting and creating parents as needed."""
        ...

    async def exists(self, key: str) -> bool:
        """Whether an object is stored under key."""
        ...

    async def stream(self, key: str, cache_ttl_seconds: int) -> ObjectStream:
        """Open an object for streaming. Raises ObjectNotFoundError or StorageError."""
        ...

    async def signed_upload_url(self, key: str, ttl_seconds: int) -> str:
        """Short-lived URL a client can PUT bytes to directly."""
        ...
