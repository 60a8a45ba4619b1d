"""
Anthropic Claude API client wrapper.

Implements the VisionModelClient protocol from core.catalog.analysis.
"""

from .client import (
    AnthropicClientError,
    AnthropicConfig,
    AnthropicVisionClient,
    RateLimitExceeded,
    create_anthropic_client,
)

__all__ = [
    "AnthropicClientError",
    "AnthropicConfig",
    "AnthropicVisionClient",
    "RateLimitExceeded",
    "create_anthropic_client",
]
