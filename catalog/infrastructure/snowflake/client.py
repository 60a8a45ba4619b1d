"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through ItemRepository which handles the translation
between domain models and database rows.
"""

import base64
import json
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.items import ITEM_COLUMNS, SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(pem_data: bytes) -> bytes:
    """
    Convert a PEM private key to the DER bytes snowflake-connector expects.
    """
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        pem_data,
        password=None,  # No password on the key
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _private_key_from_config(config: SnowflakeConfig) -> Optional[bytes]:
    """Key bytes from a file path or a base64 env value, whichever is set."""
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return _load_private_key(key_file.read())

    if config.private_key_base64:
        return _load_private_key(base64.b64decode(config.private_key_base64))

    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Key-pair auth is used when a private key (file or base64) is
    configured, password auth otherwise.

    Usage:
        with get_snowflake_connection(config) as conn:
            repo = ItemRepository(conn)
    """
    import snowflake.connector

    conn = None
    try:
        connect_params = {
            'account': config.account,
            'user': config.user,
            'database': config.database,
            'schema': config.schema,
            'warehouse': config.warehouse,
            'role': config.role,
            'client_session_keep_alive': True,
        }

        private_key = _private_key_from_config(config)
        if private_key:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = private_key
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or a private key must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    ItemRepository operations without a real database. Queries are
    recognized by pattern matching; rows come back as tuples in
    ITEM_COLUMNS order, with VARIANT columns as JSON strings the way the
    real connector returns them.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100]}
        )

        query_upper = query.upper().strip()
        self._results = []
        self._rowcount = 0

        if query_upper.startswith('INSERT INTO INVENTORY_ITEMS'):
            self._handle_insert(params)

        elif query_upper.startswith('SELECT'):
            self._handle_select(query_upper, params)

        elif query_upper.startswith('DELETE FROM INVENTORY_ITEMS'):
            self._handle_delete(params)

        elif query_upper.startswith('UPDATE INVENTORY_ITEMS'):
            self._handle_backfill()

        return self

    def _handle_insert(self, params: Optional[tuple]) -> None:
        if not params:
            return

        row = dict(zip(ITEM_COLUMNS, params))
        self._storage['inventory_items'][str(row['ITEM_ID'])] = row
        self._rowcount = 1

    def _handle_select(self, query: str, params: Optional[tuple]) -> None:
        items = self._storage['inventory_items']

        if 'COUNT(*)' in query:
            self._results = [(sum(1 for row in items.values() if _is_legacy(row)),)]

        elif 'WHERE ITEM_ID' in query:
            row = items.get(str(params[0])) if params else None
            self._results = [_as_tuple(row)] if row else []

        elif 'ORDER BY CREATED_AT DESC' in query:
            rows = sorted(items.values(), key=lambda row: row['CREATED_AT'], reverse=True)
            if params:
                rows = rows[:params[0]]
            self._results = [_as_tuple(row) for row in rows]

    def _handle_delete(self, params: Optional[tuple]) -> None:
        if not params:
            return

        removed = self._storage['inventory_items'].pop(str(params[0]), None)
        self._rowcount = 1 if removed else 0

    def _handle_backfill(self) -> None:
        updated = 0
        for row in self._storage['inventory_items'].values():
            if _is_legacy(row):
                row['IMAGE_URLS'] = json.dumps([row['IMAGE_URL']])
                updated += 1
        self._rowcount = updated

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


def _is_legacy(row: dict) -> bool:
    image_urls = row.get('IMAGE_URLS')
    if isinstance(image_urls, str):
        image_urls = json.loads(image_urls) if image_urls.strip() else None
    return not image_urls and bool(row.get('IMAGE_URL'))


def _as_tuple(row: dict) -> tuple:
    return tuple(row.get(column) for column in ITEM_COLUMNS)


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory using a simple dictionary structure.
    Not suitable for production, but perfect for local development,
    unit tests and CI.
    """

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_dict}}
        self._storage: dict[str, dict[str, dict]] = {
            'inventory_items': {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _add_item_row(self, row: dict) -> None:
        """Insert a raw row, e.g. a legacy record without IMAGE_URLS."""
        full_row = {column: row.get(column) for column in ITEM_COLUMNS}
        self._storage['inventory_items'][str(full_row['ITEM_ID'])] = full_row

    def _get_item_row(self, item_id) -> Optional[dict]:
        return self._storage['inventory_items'].get(str(item_id))

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Yields a fresh in-memory connection in mock mode, a real one otherwise.
    """
    if mock_mode:
        conn = MockSnowflakeConnection()
        try:
            yield conn
        finally:
            conn.close()
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
