"""
Upload orchestration for catalog images.

One upload request carries 1..N images for a single item. The orchestrator
walks each batch through the same states:

    Received -> Validated -> Identified -> Keyed -> Persisted -> Completed

Validation covers the whole batch before anything is written: one bad file
anywhere rejects the request and nothing is saved. Saves then run strictly
in index order, because index 0 is the primary image (the one analyzed and
stored as imageUrl).

If a save fails midway, earlier files in the batch are NOT removed. The
request still fails as a whole, and the keys already written are logged
so an offline sweep can reclaim them.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
from uuid import UUID, uuid4

from ..errors import StorageError, ValidationError
from ..media.content import ImageKind, ensure_valid_image
from ..media.paths import (
    build_storage_key,
    is_valid_category,
    is_valid_object_path,
    object_path_for_key,
)
from .backend import StorageBackend

logger = logging.getLogger(__name__)


DEFAULT_MAX_IMAGES = 10


@dataclass
class UploadedImage:
    """One file as received from the client."""
    data: bytes
    content_type: Optional[str]  # declared by the client, not trusted
    filename: Optional[str] = None  # informational only, never used for keys


@dataclass
class PlannedObject:
    """A validated image with its assigned storage key and virtual path."""
    index: int
    kind: ImageKind
    key: str
    object_path: str
    data: bytes = field(repr=False)


@dataclass
class UploadPlan:
    """A fully validated and keyed batch, ready to persist."""
    item_id: UUID
    objects: list[PlannedObject]

    @property
    def primary(self) -> PlannedObject:
        return self.objects[0]

    @property
    def object_paths(self) -> list[str]:
        return [obj.object_path for obj in self.objects]


class ImageUploadOrchestrator:
    """
    Validates, keys and persists image batches for one catalog item.

    Stateless between requests; holds only its dependencies.
    """

    def __init__(
        self,
        storage: StorageBackend,
        category: str = "items",
        max_images: int = DEFAULT_MAX_IMAGES,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        if not is_valid_category(category):
            raise ValueError(f"Invalid image category: {category!r}")
        if max_images < 1:
            raise ValueError("max_images must be positive")

        self._storage = storage
        self._category = category
        self._max_images = max_images
        self._id_factory = id_factory

    @property
    def max_images(self) -> int:
        return self._max_images

    def check_batch_size(self, count: int) -> None:
        """
        Reject empty or oversized batches.

        Cheap enough to call before reading any file contents.
        """
        if count == 0:
            raise ValidationError(
                'No images provided. Use "images" field for multiple images or "image" for single image.',
                code="NO_IMAGE",
            )
        if count > self._max_images:
            raise ValidationError(
                f"Maximum {self._max_images} images allowed per item",
                code="TOO_MANY_IMAGES",
            )

    def prepare(self, images: Sequence[UploadedImage]) -> UploadPlan:
        """
        Validate every image, then assign one item id and per-file keys.

        Raises ValidationError on the first bad file; nothing is stored.
        """
        self.check_batch_size(len(images))

        kinds = [
            ensure_valid_image(image.data, image.content_type, label=f"Image {index}")
            for index, image in enumerate(images)
        ]

        item_id = self._id_factory()
        single = len(images) == 1

        objects = []
        for index, (image, kind) in enumerate(zip(images, kinds)):
            key = build_storage_key(
                self._category,
                str(item_id),
                kind.extension,
                index=None if single else index,
            )
            object_path = object_path_for_key(key)

            if not is_valid_object_path(object_path):
                raise ValidationError(
                    "Generated object path is invalid",
                    code="INVALID_OBJECT_PATH",
                )

            objects.append(PlannedObject(
                index=index,
                kind=kind,
                key=key,
                object_path=object_path,
                data=image.data,
            ))

        logger.debug(
            "Prepared upload plan",
            extra={"item_id": str(item_id), "image_count": len(objects)},
        )

        return UploadPlan(item_id=item_id, objects=objects)

    async def persist(self, plan: UploadPlan) -> list[str]:
        """
        Save every planned object in index order.

        Returns the ordered virtual path list; element 0 is the primary.
        """
        saved_keys: list[str] = []

        for obj in plan.objects:
            try:
                await self._storage.save(obj.key, obj.data)
            except StorageError:
                logger.error(
                    "Image batch save failed; earlier images left in storage",
                    extra={
                        "item_id": str(plan.item_id),
                        "failed_index": obj.index,
                        "orphaned_keys": saved_keys,
                    },
                )
                raise
            saved_keys.append(obj.key)

        logger.info(
            "Stored image batch",
            extra={
                "item_id": str(plan.item_id),
                "image_count": len(saved_keys),
                "backend": getattr(self._storage, "name", "unknown"),
            },
        )

        return plan.object_paths

    async def upload(self, images: Sequence[UploadedImage]) -> UploadPlan:
        """Prepare and persist in one step."""
        plan = self.prepare(images)
        await self.persist(plan)
        return plan
