"""
Media validation: content sniffing and virtual object paths.
"""

from .content import (
    ContentCheck,
    ImageKind,
    classify,
    ensure_valid_image,
    normalize_claimed_kind,
    validate,
)
from .paths import (
    OBJECT_PREFIX,
    build_storage_key,
    is_valid_object_path,
    object_key_from_path,
    object_path_for_key,
    resolve_under_root,
)

__all__ = [
    "ContentCheck",
    "ImageKind",
    "classify",
    "ensure_valid_image",
    "normalize_claimed_kind",
    "validate",
    "OBJECT_PREFIX",
    "build_storage_key",
    "is_valid_object_path",
    "object_key_from_path",
    "object_path_for_key",
    "resolve_under_root",
]
