"""
Object storage use cases: the backend contract, uploads and retrieval.
"""

from .backend import ObjectStream, StorageBackend, cache_control_header, content_type_for_key
from .retrieval import ObjectGateway
from .uploads import ImageUploadOrchestrator, PlannedObject, UploadedImage, UploadPlan

__all__ = [
    "ObjectStream",
    "StorageBackend",
    "cache_control_header",
    "content_type_for_key",
    "ObjectGateway",
    "ImageUploadOrchestrator",
    "PlannedObject",
    "UploadedImage",
    "UploadPlan",
]
