"""
Anthropic Claude API client wrapper.

A thin wrapper around the Anthropic SDK that implements our
VisionModelClient protocol: one photo plus prompts in, reply text out.
Which model to ask is the analyzer's decision; the wrapper only supplies a
default when none is given.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

import anthropic
from anthropic import APIError, RateLimitError


logger = logging.getLogger(__name__)


class AnthropicClientError(Exception):
    """Raised when API calls fail."""
    pass


class RateLimitExceeded(AnthropicClientError):
    """Raised when we hit rate limits."""
    pass


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic client."""
    api_key: str
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1000
    temperature: float = 0.2  # Catalog attributes should be repeatable

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")


class AnthropicVisionClient:
    """
    Implementation of VisionModelClient using Claude.

    This class knows about Anthropic's message format but nothing about
    inventories or valuations.
    """

    def __init__(self, config: AnthropicConfig, client: Optional[anthropic.AsyncAnthropic] = None) -> None:
        self._config = config
        self._client = client or anthropic.AsyncAnthropic(api_key=config.api_key)

    async def analyze_image(
        self,
        image: bytes,
        media_type: str,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> str:
        """Send one image to Claude and return the text reply."""
        if not image:
            raise ValueError("Image data is required")

        model_name = model or self._config.model
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.b64encode(image).decode("utf-8"),
                },
            },
            {"type": "text", "text": user_prompt},
        ]

        try:
            response = await self._client.messages.create(
                model=model_name,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": content}],
            )
        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e), "model": model_name})
            raise RateLimitExceeded("API rate limit exceeded. Please try again later.")
        except APIError as e:
            logger.error(
                "API error",
                extra={"error": str(e), "status": getattr(e, "status_code", None), "model": model_name}
            )
            raise AnthropicClientError(f"API error: {e.message}")

        return self._extract_text_response(response)

    def _extract_text_response(self, response) -> str:
        """Join the text blocks of a response."""
        if not response.content:
            return ""

        text_blocks = [
            block.text
            for block in response.content
            if hasattr(block, 'text')
        ]

        return "\n".join(text_blocks)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_anthropic_client(
    api_key: str,
    model: str = "claude-3-5-haiku-20241022",
    max_tokens: int = 1000,
    temperature: float = 0.2,
) -> Optional[AnthropicVisionClient]:
    """
    Create a configured client, or None when no API key is set.

    A missing key is not an error for the catalog: uploads still work and
    items get placeholder attributes.
    """
    if not api_key:
        logger.warning("ANTHROPIC_API_KEY not set; item analysis disabled")
        return None

    config = AnthropicConfig(
        api_key=api_key,
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return AnthropicVisionClient(config)
