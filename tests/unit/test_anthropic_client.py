"""
Unit tests for the Anthropic wrapper.

The SDK client is replaced by a stub exposing messages.create, so no
request ever leaves the process.
"""

import asyncio
import base64
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from catalog.infrastructure.anthropic.client import (
    AnthropicClientError,
    AnthropicConfig,
    AnthropicVisionClient,
    RateLimitExceeded,
    create_anthropic_client,
)


IMAGE = b"\x89PNG\r\n\x1a\n" + bytes(16)


class StubMessages:
    def __init__(self, response=None, error=None) -> None:
        self._response = response
        self._error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self._error is not None:
            raise self._error
        return self._response


def make_client(messages: StubMessages) -> AnthropicVisionClient:
    config = AnthropicConfig(api_key="test-key", model="default-model")
    return AnthropicVisionClient(config, client=SimpleNamespace(messages=messages))


def api_response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


class TestAnthropicConfig:
    """Tests for configuration validation."""

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            AnthropicConfig(api_key="")

    def test_rejects_bad_temperature(self):
        with pytest.raises(ValueError, match="temperature"):
            AnthropicConfig(api_key="k", temperature=1.5)


class TestAnalyzeImage:
    """Tests for the request sent and the reply returned."""

    def test_sends_image_and_prompts(self):
        messages = StubMessages(response=SimpleNamespace(content=[SimpleNamespace(text='{"name": "Mug"}')]))

        reply = asyncio.run(make_client(messages).analyze_image(
            IMAGE, "image/png", system_prompt="system", user_prompt="describe",
        ))

        assert reply == '{"name": "Mug"}'
        assert messages.kwargs["model"] == "default-model"
        assert messages.kwargs["system"] == "system"
        image_block, text_block = messages.kwargs["messages"][0]["content"]
        assert image_block["source"]["media_type"] == "image/png"
        assert base64.b64decode(image_block["source"]["data"]) == IMAGE
        assert text_block == {"type": "text", "text": "describe"}

    def test_model_override(self):
        messages = StubMessages(response=SimpleNamespace(content=[]))

        reply = asyncio.run(make_client(messages).analyze_image(
            IMAGE, "image/png", "system", "describe", model="premium-model",
        ))

        assert reply == ""
        assert messages.kwargs["model"] == "premium-model"

    def test_empty_image_is_rejected(self):
        with pytest.raises(ValueError):
            asyncio.run(make_client(StubMessages()).analyze_image(b"", "image/png", "s", "u"))

    def test_rate_limit(self):
        error = anthropic.RateLimitError("slow down", response=api_response(429), body=None)

        with pytest.raises(RateLimitExceeded):
            asyncio.run(make_client(StubMessages(error=error)).analyze_image(IMAGE, "image/png", "s", "u"))

    def test_api_error(self):
        error = anthropic.InternalServerError("overloaded", response=api_response(500), body=None)

        with pytest.raises(AnthropicClientError):
            asyncio.run(make_client(StubMessages(error=error)).analyze_image(IMAGE, "image/png", "s", "u"))


class TestCreateAnthropicClient:
    """Tests for the factory."""

    def test_no_key_means_no_client(self):
        assert create_anthropic_client(api_key="") is None

    def test_with_key(self):
        client = create_anthropic_client(api_key="test-key", model="fast-model")
        assert isinstance(client, AnthropicVisionClient)
