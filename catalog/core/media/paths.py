"""
Virtual object paths.

Clients address stored files by virtual path, never by backend location:

    /objects/<category>/<itemId>.<ext>          single image (legacy)
    /objects/<category>/<itemId>/<index>.<ext>  multi image, zero-based

The grammar is a durable contract - stored records and client UIs depend
on it - so building and validating paths lives in one place.

Validation happens twice. is_valid_object_path is a pure syntactic check;
resolve_under_root re-checks the physical location when a backend turns a
key into a filesystem path, which catches anything that slipped past the
syntax check (symlinks, absolute-path tricks).
"""

import re
from pathlib import Path
from typing import Optional

from ..errors import ObjectNotFoundError


OBJECT_PREFIX = "/objects/"

_OBJECT_PATH_PATTERN = re.compile(r"^/objects/[A-Za-z0-9_-]+/[A-Za-z0-9_./-]+$")
_CATEGORY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_object_path(path: str) -> bool:
    """
    Check a virtual path against traversal, injection and shape rules.

    Every rule is checked independently; any violation rejects the path.
    """
    if not isinstance(path, str):
        return False

    if not path.startswith(OBJECT_PREFIX):
        return False

    if ".." in path:
        return False

    if "\0" in path:
        return False

    segments = path[len(OBJECT_PREFIX):].split("/")
    for segment in segments:
        if segment in ("", ".", ".."):
            return False

    return bool(_OBJECT_PATH_PATTERN.match(path))


def is_valid_category(category: str) -> bool:
    return bool(_CATEGORY_PATTERN.match(category or ""))


def build_storage_key(category: str, item_id: str, extension: str, index: Optional[int] = None) -> str:
    """
    Build the backend key for an item image.

    index=None gives the legacy single-image layout.
    """
    if index is None:
        return f"{category}/{item_id}.{extension}"
    return f"{category}/{item_id}/{index}.{extension}"


def object_path_for_key(key: str) -> str:
    """Virtual path clients use to fetch a stored key."""
    return f"{OBJECT_PREFIX}{key}"


def object_key_from_path(path: str) -> str:
    """
    Backend key for a virtual path.

    The /objects/ prefix is dropped; the category segment stays, since
    uploads are keyed as <category>/... as well.
    """
    if not is_valid_object_path(path):
        raise ObjectNotFoundError()
    return path[len(OBJECT_PREFIX):]


def resolve_under_root(root: Path, key: str) -> Path:
    """
    Resolve a key to an absolute location strictly under root.

    Raises ObjectNotFoundError when the resolved location escapes the root
    (or is the root itself).
    """
    base = Path(root).resolve()
    candidate = (base / key).resolve()

    if candidate == base or base not in candidate.parents:
        raise ObjectNotFoundError()

    return candidate
