"""Object storage backends: local disk, remote bucket and in-memory."""

from .client import MockStorageBackend, create_storage_backend
from .local import LocalStorageBackend
from .proxy import SignedUrlProxy
from .remote import RemoteStorageBackend, RemoteStorageConfig, parse_object_dir

__all__ = [
    "LocalStorageBackend",
    "MockStorageBackend",
    "RemoteStorageBackend",
    "RemoteStorageConfig",
    "SignedUrlProxy",
    "create_storage_backend",
    "parse_object_dir",
]
