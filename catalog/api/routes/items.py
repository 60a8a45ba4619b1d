"""
Catalog item endpoints.

Creating an item is a single multipart request carrying its photos:
1. Files are validated as a batch (count, size, declared vs sniffed type)
2. One item id is assigned and every file gets a key under it
3. Files are stored in order; the first is the primary image
4. The primary image is analyzed for name, category and value
5. The record is saved and returned

The form accepts "images" (1..10 files) and, for older clients, a single
"image". When both are present "images" wins.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.catalog.models import CatalogItem
from ...core.errors import ItemNotFoundError, ValidationError
from ...core.objects.uploads import UploadedImage
from ..dependencies import (
    ItemAnalyzerDep,
    ItemRepositoryDep,
    SettingsDep,
    UploadOrchestratorDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class ItemResponse(BaseModel):
    """A catalog item as the client sees it (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    name: str
    description: str
    category: str
    tags: list[str] = Field(default_factory=list)
    image_url: str = Field(description="Primary image, always imageUrls[0]")
    image_urls: list[str] = Field(description="All images in upload order")
    barcode_data: str
    estimated_value: Optional[str] = Field(default=None, description="USD, two decimals")
    value_confidence: Optional[str] = None
    value_rationale: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_item(cls, item: CatalogItem) -> "ItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            category=item.category,
            tags=list(item.tags),
            image_url=item.image_url,
            image_urls=list(item.image_urls or [item.image_url]),
            barcode_data=item.barcode_data,
            estimated_value=item.estimated_value,
            value_confidence=item.value_confidence.value if item.value_confidence else None,
            value_rationale=item.value_rationale,
            location=item.location,
            created_at=item.created_at,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an item from photos",
    description="Upload 1-10 photos of one item. The first photo is analyzed and becomes the primary image.",
)
async def create_item(
    orchestrator: UploadOrchestratorDep,
    analyzer: ItemAnalyzerDep,
    repository: ItemRepositoryDep,
    settings: SettingsDep,
    images: Annotated[Optional[list[UploadFile]], File(description="Item photos (JPEG, PNG or WebP)")] = None,
    image: Annotated[Optional[UploadFile], File(description="Single photo (legacy clients)")] = None,
    location: Annotated[Optional[str], Form(description="Where the item is kept")] = None,
) -> ItemResponse:
    files = list(images) if images else ([image] if image else [])

    # Count first so an oversized batch is rejected before any file is read
    orchestrator.check_batch_size(len(files))

    uploaded: list[UploadedImage] = []
    for index, upload in enumerate(files):
        data = await upload.read()
        if len(data) > settings.max_image_size_bytes:
            raise ValidationError(
                f"Image {index}: file too large. Maximum size is {settings.max_image_size_mb}MB",
                code="FILE_TOO_LARGE",
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
        uploaded.append(UploadedImage(
            data=data,
            content_type=upload.content_type,
            filename=upload.filename,
        ))

    plan = orchestrator.prepare(uploaded)

    logger.info(
        "Processing item upload",
        extra={"item_id": str(plan.item_id), "image_count": len(plan.objects)}
    )

    object_paths = await orchestrator.persist(plan)

    attributes = await analyzer.analyze_or_placeholder(
        plan.primary.data,
        media_type=plan.primary.kind.mime_type,
    )

    item = CatalogItem.from_upload(
        item_id=plan.item_id,
        image_urls=object_paths,
        attributes=attributes,
        location=location or None,
    )

    try:
        repository.create_item(item)
    except Exception:
        logger.error(
            "Item record not saved; stored images are orphaned",
            extra={"item_id": str(plan.item_id), "object_paths": object_paths}
        )
        raise

    return ItemResponse.from_item(item)


@router.get(
    "",
    response_model=list[ItemResponse],
    summary="List items",
    description="Newest first.",
)
async def list_items(
    repository: ItemRepositoryDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[ItemResponse]:
    return [ItemResponse.from_item(item) for item in repository.list_items(limit=limit)]


@router.get(
    "/{item_id}",
    response_model=ItemResponse,
    summary="Get an item",
    responses={404: {"description": "Item not found"}},
)
async def get_item(item_id: UUID, repository: ItemRepositoryDep) -> ItemResponse:
    return ItemResponse.from_item(repository.get_item(item_id))


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an item",
    description="Removes the record. Stored images are not deleted.",
    responses={404: {"description": "Item not found"}},
)
async def delete_item(item_id: UUID, repository: ItemRepositoryDep) -> None:
    if not repository.delete_item(item_id):
        raise ItemNotFoundError()
