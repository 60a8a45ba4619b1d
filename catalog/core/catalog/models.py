"""
Domain models for the item catalog.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs.

The image fields carry history. Items used to have exactly one image
(image_url). Items now have an ordered list (image_urls), but records
written before that change have no list at all. image_url is kept as the
primary image for every record, and whenever the list is present its
first element is the primary.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class ValueConfidence(Enum):
    """How sure the analysis is about its value estimate."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def generate_barcode_data() -> str:
    """Barcode payload printed on item labels: INV-<epoch ms>-<8 hex>."""
    return f"INV-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ItemAttributes:
    """
    Descriptive attributes produced by image analysis.

    estimated_value is a decimal string ("45.00") rather than a float so
    that money never goes through binary floating point.
    """
    name: str
    description: str
    category: str
    tags: tuple[str, ...] = ()
    confidence: float = 0.0
    estimated_value: Optional[str] = None
    value_confidence: Optional[ValueConfidence] = None
    value_rationale: Optional[str] = None


PLACEHOLDER_ATTRIBUTES = ItemAttributes(
    name="Item",
    description="AI analysis temporarily unavailable. Please add details manually.",
    category="Uncategorized",
)


@dataclass
class CatalogItem:
    """
    A cataloged possession with one or more images.

    image_urls is None for legacy records; read paths fill it in from
    image_url (see migration.materialize_image_urls).
    """
    name: str
    description: str
    category: str
    image_url: str
    id: UUID = field(default_factory=uuid4)
    tags: list[str] = field(default_factory=list)
    image_urls: Optional[list[str]] = None
    barcode_data: str = field(default_factory=generate_barcode_data)
    estimated_value: Optional[str] = None
    value_confidence: Optional[ValueConfidence] = None
    value_rationale: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.image_url:
            raise ValueError("Catalog item requires a primary image")
        if self.image_urls and self.image_urls[0] != self.image_url:
            raise ValueError("Primary image must be the first entry of image_urls")

    @classmethod
    def from_upload(
        cls,
        item_id: UUID,
        image_urls: list[str],
        attributes: ItemAttributes,
        location: Optional[str] = None,
    ) -> "CatalogItem":
        """Build a new item from a completed upload and its analysis."""
        if not image_urls:
            raise ValueError("At least one image is required")

        return cls(
            id=item_id,
            name=attributes.name,
            description=attributes.description,
            category=attributes.category,
            tags=list(attributes.tags),
            image_url=image_urls[0],
            image_urls=list(image_urls),
            estimated_value=attributes.estimated_value,
            value_confidence=attributes.value_confidence,
            value_rationale=attributes.value_rationale,
            location=location,
        )

    @property
    def image_count(self) -> int:
        return len(self.image_urls) if self.image_urls else 1
