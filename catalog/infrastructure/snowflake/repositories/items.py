"""
Snowflake repository for catalog items.

This module implements the repository pattern for item data access.
The repository:
1. Translates between CatalogItem and INVENTORY_ITEMS rows
2. Encapsulates all SQL queries
3. Applies the legacy image migration on every read

TAGS and IMAGE_URLS are VARIANT arrays. IMAGE_URLS is NULL for rows
written before items could have several images; readers never see that,
because every row passes through materialize_image_urls on the way out.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol
from uuid import UUID

from ....core.catalog.migration import materialize_image_urls
from ....core.catalog.models import CatalogItem, ValueConfidence
from ....core.errors import ItemNotFoundError


logger = logging.getLogger(__name__)


ITEM_COLUMNS = (
    "ITEM_ID",
    "NAME",
    "DESCRIPTION",
    "CATEGORY",
    "TAGS",
    "IMAGE_URL",
    "IMAGE_URLS",
    "BARCODE_DATA",
    "ESTIMATED_VALUE",
    "VALUE_CONFIDENCE",
    "VALUE_RATIONALE",
    "LOCATION",
    "CREATED_AT",
)

_SELECT_COLUMNS = ", ".join(ITEM_COLUMNS)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "CATALOG"
    schema: str = "INVENTORY"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class ItemRepository:
    """
    Repository for catalog item persistence.

    Items are written once on upload and afterwards only read or deleted,
    so there is no upsert here.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_item(self, item: CatalogItem) -> CatalogItem:
        """Insert a new item and return it."""
        cursor = self._conn.cursor()

        try:
            # PARSE_JSON isn't allowed in a VALUES clause, hence INSERT ... SELECT
            cursor.execute(f"""
                INSERT INTO INVENTORY_ITEMS ({_SELECT_COLUMNS})
                SELECT %s, %s, %s, %s, PARSE_JSON(%s), %s, PARSE_JSON(%s),
                       %s, %s, %s, %s, %s, %s
            """, (
                str(item.id),
                item.name,
                item.description,
                item.category,
                json.dumps(list(item.tags)),
                item.image_url,
                json.dumps(item.image_urls) if item.image_urls is not None else None,
                item.barcode_data,
                item.estimated_value,
                item.value_confidence.value if item.value_confidence else None,
                item.value_rationale,
                item.location,
                item.created_at,
            ))

            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save item",
                extra={"item_id": str(item.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

        logger.info(
            "Created catalog item",
            extra={"item_id": str(item.id), "image_count": item.image_count}
        )

        return item

    def get_item(self, item_id: UUID) -> CatalogItem:
        """Load one item. Raises ItemNotFoundError."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {_SELECT_COLUMNS}
                FROM INVENTORY_ITEMS
                WHERE ITEM_ID = %s
            """, (str(item_id),))

            row = cursor.fetchone()
            if not row:
                raise ItemNotFoundError(f"Item {item_id} not found")

            return materialize_image_urls(self._build_item(row))

        finally:
            cursor.close()

    def list_items(self, limit: int = 100) -> list[CatalogItem]:
        """List items, newest first."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {_SELECT_COLUMNS}
                FROM INVENTORY_ITEMS
                ORDER BY CREATED_AT DESC
                LIMIT %s
            """, (limit,))

            rows = cursor.fetchall()
            return [materialize_image_urls(self._build_item(row)) for row in rows]

        finally:
            cursor.close()

    def delete_item(self, item_id: UUID) -> bool:
        """
        Delete an item record.

        Returns False if there was nothing to delete. Stored images are
        left in place.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM INVENTORY_ITEMS
                WHERE ITEM_ID = %s
            """, (str(item_id),))

            deleted = cursor.rowcount > 0
            self._conn.commit()

        finally:
            cursor.close()

        if deleted:
            logger.info("Deleted catalog item", extra={"item_id": str(item_id)})

        return deleted

    def count_legacy_items(self) -> int:
        """Number of rows whose IMAGE_URLS is missing or empty."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*)
                FROM INVENTORY_ITEMS
                WHERE (IMAGE_URLS IS NULL OR ARRAY_SIZE(IMAGE_URLS) = 0)
                  AND IMAGE_URL IS NOT NULL
            """)

            row = cursor.fetchone()
            return int(row[0]) if row else 0

        finally:
            cursor.close()

    def backfill_image_urls(self) -> int:
        """
        Store IMAGE_URLS = [IMAGE_URL] for legacy rows.

        Optional: reads are already correct without it. Only missing or
        empty lists are written, so running it again touches nothing.
        Returns the number of rows updated.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE INVENTORY_ITEMS
                SET IMAGE_URLS = ARRAY_CONSTRUCT(IMAGE_URL)
                WHERE (IMAGE_URLS IS NULL OR ARRAY_SIZE(IMAGE_URLS) = 0)
                  AND IMAGE_URL IS NOT NULL
            """)

            updated = cursor.rowcount or 0
            self._conn.commit()

        except Exception as e:
            logger.error("Image URL backfill failed", extra={"error": str(e)})
            raise
        finally:
            cursor.close()

        logger.info("Backfilled image URLs", extra={"rows_updated": updated})

        return updated

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_item(self, row) -> CatalogItem:
        """Construct a CatalogItem from a row in ITEM_COLUMNS order."""
        image_urls = self._parse_string_list(row[6])

        return CatalogItem(
            id=UUID(str(row[0])),
            name=row[1] or "Item",
            description=row[2] or "",
            category=row[3] or "Uncategorized",
            tags=self._parse_string_list(row[4]) or [],
            image_url=row[5],
            image_urls=image_urls or None,
            barcode_data=row[7] or "",
            estimated_value=self._format_value(row[8]),
            value_confidence=self._parse_value_confidence(row[9]),
            value_rationale=row[10],
            location=row[11],
            created_at=row[12],
        )

    def _parse_variant_json(self, variant_data):
        """
        Parse Snowflake VARIANT data that might be a string or already parsed.

        snowflake-connector-python returns VARIANT as a JSON string; other
        drivers and the mock may hand back parsed lists.
        """
        if not variant_data:
            return None

        if isinstance(variant_data, str):
            try:
                return json.loads(variant_data)
            except json.JSONDecodeError as e:
                logger.error(
                    "Failed to parse VARIANT JSON string",
                    extra={"variant_data": variant_data[:100], "error": str(e)}
                )
                return None

        return variant_data

    def _parse_string_list(self, variant_data) -> Optional[list[str]]:
        data = self._parse_variant_json(variant_data)

        if data is None:
            return None

        if not isinstance(data, list):
            logger.warning(
                "VARIANT data is not a list after parsing",
                extra={"type": type(data).__name__}
            )
            return None

        return [value for value in data if isinstance(value, str)]

    def _format_value(self, value: Any) -> Optional[str]:
        """NUMBER(10,2) comes back as Decimal; the API speaks '45.00'."""
        if value is None or value == "":
            return None

        try:
            return f"{Decimal(str(value)):.2f}"
        except InvalidOperation:
            logger.warning("Unparseable estimated value", extra={"value": str(value)[:50]})
            return None

    def _parse_value_confidence(self, value: Any) -> Optional[ValueConfidence]:
        if not value:
            return None
        try:
            return ValueConfidence(value)
        except ValueError:
            return None
