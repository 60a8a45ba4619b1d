"""
Read-time migration from single-image to multi-image records.

Legacy rows have image_url but no image_urls. Rather than block on a schema
migration, every read derives the list from the primary image. The rule is
expand-only: a populated list is never touched, and nothing is written back.
An offline backfill (ItemRepository.backfill_image_urls) can make the stored
data match, but that only saves work - reads are correct without it.
"""

from dataclasses import replace
from typing import Iterable

from .models import CatalogItem


def materialize_image_urls(item: CatalogItem) -> CatalogItem:
    """
    Return the item with image_urls populated.

    The input is not modified. Applying this twice gives the same result
    as applying it once.
    """
    if item.image_urls:
        return item
    return replace(item, image_urls=[item.image_url])


def materialize_all(items: Iterable[CatalogItem]) -> list[CatalogItem]:
    return [materialize_image_urls(item) for item in items]
