"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- anthropic: Claude API client for item analysis
- snowflake: Item persistence
- storage: Object storage (local disk, remote bucket, in-memory)

These wrappers translate between external formats and our domain models.
"""
