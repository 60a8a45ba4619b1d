"""
Unit tests for ItemRepository over the in-memory Snowflake mock.
"""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from catalog.core.catalog.models import CatalogItem, ItemAttributes, ValueConfidence
from catalog.core.errors import ItemNotFoundError
from catalog.infrastructure.snowflake.client import MockSnowflakeConnection
from catalog.infrastructure.snowflake.repositories.items import ItemRepository


@pytest.fixture
def connection() -> MockSnowflakeConnection:
    return MockSnowflakeConnection()


@pytest.fixture
def repository(connection) -> ItemRepository:
    return ItemRepository(connection)


def new_item(created_at=None, image_count: int = 2) -> CatalogItem:
    item_id = uuid4()
    paths = [f"/objects/items/{item_id}/{i}.jpg" for i in range(image_count)]
    item = CatalogItem.from_upload(
        item_id=item_id,
        image_urls=paths,
        attributes=ItemAttributes(
            name="Road bike",
            description="Steel frame road bike",
            category="Sports",
            tags=("bicycle", "steel"),
            estimated_value="300.00",
            value_confidence=ValueConfidence.LOW,
            value_rationale="Older frame",
        ),
        location="Garage",
    )
    if created_at is not None:
        item.created_at = created_at
    return item


def legacy_row(image_url: str = "/objects/items/legacy.jpg", **overrides) -> dict:
    row = {
        "ITEM_ID": str(uuid4()),
        "NAME": "Old radio",
        "DESCRIPTION": "Tube radio",
        "CATEGORY": "Electronics",
        "TAGS": json.dumps(["radio"]),
        "IMAGE_URL": image_url,
        "IMAGE_URLS": None,
        "BARCODE_DATA": "INV-1700000000000-ABCDEF12",
        "ESTIMATED_VALUE": None,
        "VALUE_CONFIDENCE": None,
        "VALUE_RATIONALE": None,
        "LOCATION": None,
        "CREATED_AT": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


class TestCreateAndGet:
    """Tests for writing and reading items."""

    def test_round_trip(self, repository):
        item = new_item()

        repository.create_item(item)
        loaded = repository.get_item(item.id)

        assert loaded.id == item.id
        assert loaded.name == "Road bike"
        assert loaded.tags == ["bicycle", "steel"]
        assert loaded.image_url == item.image_url
        assert loaded.image_urls == item.image_urls
        assert loaded.barcode_data == item.barcode_data
        assert loaded.estimated_value == "300.00"
        assert loaded.value_confidence is ValueConfidence.LOW
        assert loaded.location == "Garage"

    def test_missing_item(self, repository):
        with pytest.raises(ItemNotFoundError):
            repository.get_item(uuid4())

    def test_decimal_values_are_formatted(self, connection, repository):
        """NUMBER columns come back as Decimal; the API wants two decimals."""
        row = legacy_row(ESTIMATED_VALUE=Decimal("45.5"))
        connection._add_item_row(row)

        assert repository.get_item(row["ITEM_ID"]).estimated_value == "45.50"

    def test_unknown_value_confidence_is_dropped(self, connection, repository):
        row = legacy_row(VALUE_CONFIDENCE="certain")
        connection._add_item_row(row)

        assert repository.get_item(row["ITEM_ID"]).value_confidence is None


class TestLegacyRecords:
    """Tests for rows written before multi-image uploads."""

    def test_get_fills_image_urls(self, connection, repository):
        row = legacy_row("/objects/items/legacy.jpg")
        connection._add_item_row(row)

        item = repository.get_item(row["ITEM_ID"])

        assert item.image_urls == ["/objects/items/legacy.jpg"]
        assert item.image_url == "/objects/items/legacy.jpg"

    def test_reads_do_not_write_back(self, connection, repository):
        row = legacy_row()
        connection._add_item_row(row)

        repository.get_item(row["ITEM_ID"])
        repository.list_items()

        assert connection._get_item_row(row["ITEM_ID"])["IMAGE_URLS"] is None

    def test_list_fills_image_urls(self, connection, repository):
        connection._add_item_row(legacy_row("/objects/items/a.jpg"))
        repository.create_item(new_item())

        items = repository.list_items()

        assert all(item.image_urls and item.image_urls[0] == item.image_url for item in items)


class TestListAndDelete:
    """Tests for listing and deleting."""

    def test_newest_first(self, repository):
        now = datetime.now(timezone.utc)
        older = new_item(created_at=now - timedelta(days=1))
        newer = new_item(created_at=now)
        repository.create_item(older)
        repository.create_item(newer)

        assert [item.id for item in repository.list_items()] == [newer.id, older.id]

    def test_limit(self, repository):
        for _ in range(3):
            repository.create_item(new_item())

        assert len(repository.list_items(limit=2)) == 2

    def test_delete(self, repository):
        item = repository.create_item(new_item())

        assert repository.delete_item(item.id) is True
        assert repository.delete_item(item.id) is False
        with pytest.raises(ItemNotFoundError):
            repository.get_item(item.id)


class TestBackfill:
    """Tests for the optional offline backfill."""

    def test_backfill_updates_only_legacy_rows(self, connection, repository):
        row = legacy_row("/objects/items/legacy.jpg")
        connection._add_item_row(row)
        repository.create_item(new_item())

        assert repository.count_legacy_items() == 1
        assert repository.backfill_image_urls() == 1
        assert json.loads(connection._get_item_row(row["ITEM_ID"])["IMAGE_URLS"]) == ["/objects/items/legacy.jpg"]
        assert repository.count_legacy_items() == 0

    def test_backfill_is_idempotent(self, connection, repository):
        connection._add_item_row(legacy_row())

        repository.backfill_image_urls()

        assert repository.backfill_image_urls() == 0

    def test_backfilled_row_reads_the_same(self, connection, repository):
        row = legacy_row("/objects/items/legacy.jpg")
        connection._add_item_row(row)
        before = repository.get_item(row["ITEM_ID"])

        repository.backfill_image_urls()

        assert repository.get_item(row["ITEM_ID"]) == before

    def test_empty_image_list_counts_as_legacy(self, connection, repository):
        """A stored empty array reads as [IMAGE_URL], so the backfill writes it too."""
        row = legacy_row("/objects/items/legacy.jpg", IMAGE_URLS=json.dumps([]))
        connection._add_item_row(row)

        assert repository.get_item(row["ITEM_ID"]).image_urls == ["/objects/items/legacy.jpg"]
        assert repository.count_legacy_items() == 1
        assert repository.backfill_image_urls() == 1
        assert json.loads(connection._get_item_row(row["ITEM_ID"])["IMAGE_URLS"]) == ["/objects/items/legacy.jpg"]
        assert repository.count_legacy_items() == 0
