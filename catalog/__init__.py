"""
Item Catalog - photograph your belongings, catalog them with AI.

This package contains the complete application:
- core: Framework-agnostic business logic (validation, uploads, migration)
- infrastructure: External service integrations (storage, Snowflake, Claude)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
