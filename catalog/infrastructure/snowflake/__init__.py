"""
Snowflake persistence for catalog items.
"""

from .client import MockSnowflakeConnection, create_snowflake_connection
from .repositories.items import ItemRepository, SnowflakeConfig

__all__ = ["ItemRepository", "MockSnowflakeConnection", "SnowflakeConfig", "create_snowflake_connection"]
