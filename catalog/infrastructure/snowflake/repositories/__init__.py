"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .items import ITEM_COLUMNS, ItemRepository, SnowflakeConfig, SnowflakeConnection

__all__ = ["ITEM_COLUMNS", "ItemRepository", "SnowflakeConfig", "SnowflakeConnection"]
