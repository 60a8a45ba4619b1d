"""
Unit tests for item analysis: tiered model policy and reply parsing.
"""

import asyncio

import pytest

from catalog.core.catalog.analysis import (
    FAST_USER_PROMPT,
    PREMIUM_USER_PROMPT,
    AnalysisError,
    ItemAnalyzer,
    normalize_estimated_value,
    parse_analysis_response,
)
from catalog.core.catalog.models import PLACEHOLDER_ATTRIBUTES, ValueConfidence


IMAGE = b"\xff\xd8\xff\xe0" + bytes(16)


def reply(**overrides) -> dict:
    data = {
        "name": "Cast iron skillet",
        "description": "10 inch skillet",
        "category": "Kitchen",
        "tags": ["cookware", "cast iron"],
        "confidence": 0.85,
        "estimatedValue": "25",
        "valueConfidence": "medium",
        "valueRationale": "Common brand, good condition",
    }
    data.update(overrides)
    return data


def make_analyzer(client, threshold: float = 0.4) -> ItemAnalyzer:
    return ItemAnalyzer(
        vision_client=client,
        fast_model="fast-model",
        premium_model="premium-model",
        confidence_threshold=threshold,
    )


class TestItemAnalyzer:
    """Tests for the fast-then-premium policy."""

    def test_confident_fast_answer_is_used(self, vision_client_factory):
        client = vision_client_factory([reply()])

        result = asyncio.run(make_analyzer(client).analyze(IMAGE, "image/jpeg"))

        assert result.name == "Cast iron skillet"
        assert result.estimated_value == "25.00"
        assert [call["model"] for call in client.calls] == ["fast-model"]
        assert client.calls[0]["user_prompt"] == FAST_USER_PROMPT

    def test_low_confidence_escalates_to_premium(self, vision_client_factory):
        client = vision_client_factory([
            reply(confidence=0.2, name="Pan"),
            reply(confidence=0.95, name="Lodge cast iron skillet"),
        ])

        result = asyncio.run(make_analyzer(client).analyze(IMAGE, "image/jpeg"))

        assert result.name == "Lodge cast iron skillet"
        assert [call["model"] for call in client.calls] == ["fast-model", "premium-model"]
        assert client.calls[1]["user_prompt"] == PREMIUM_USER_PROMPT

    def test_missing_confidence_does_not_escalate(self, vision_client_factory):
        """Fast replies without a confidence default to 0.4, which meets the threshold."""
        fast = reply()
        del fast["confidence"]
        client = vision_client_factory([fast])

        result = asyncio.run(make_analyzer(client).analyze(IMAGE))

        assert result.confidence == 0.4
        assert len(client.calls) == 1

    def test_premium_default_confidence(self, vision_client_factory):
        premium = reply()
        del premium["confidence"]
        client = vision_client_factory([reply(confidence=0.1), premium])

        result = asyncio.run(make_analyzer(client).analyze(IMAGE))

        assert result.confidence == 0.9

    def test_media_type_is_passed_through(self, vision_client_factory):
        client = vision_client_factory([reply()])

        asyncio.run(make_analyzer(client).analyze(IMAGE, "image/webp"))

        assert client.calls[0]["media_type"] == "image/webp"

    def test_no_client_raises(self):
        with pytest.raises(AnalysisError):
            asyncio.run(make_analyzer(None).analyze(IMAGE))

    def test_placeholder_without_client(self):
        result = asyncio.run(make_analyzer(None).analyze_or_placeholder(IMAGE))
        assert result == PLACEHOLDER_ATTRIBUTES

    def test_placeholder_when_client_fails(self, vision_client_factory):
        client = vision_client_factory(error=RuntimeError("API down"))

        result = asyncio.run(make_analyzer(client).analyze_or_placeholder(IMAGE))

        assert result == PLACEHOLDER_ATTRIBUTES

    def test_placeholder_when_reply_is_garbage(self, vision_client_factory):
        client = vision_client_factory(["I can't tell what this is."])

        result = asyncio.run(make_analyzer(client).analyze_or_placeholder(IMAGE))

        assert result.name == "Item"
        assert result.description.startswith("AI analysis temporarily unavailable")


class TestParseAnalysisResponse:
    """Tests for normalizing model replies."""

    def test_code_fences_are_tolerated(self):
        raw = '```json\n{"name": "Mug", "description": "Ceramic mug", "category": "Kitchen"}\n```'

        result = parse_analysis_response(raw)

        assert result.name == "Mug"

    def test_missing_fields_get_defaults(self):
        result = parse_analysis_response("{}")

        assert result.name == "Item"
        assert result.category == "Uncategorized"
        assert result.tags == ()
        assert result.estimated_value is None

    def test_non_string_tags_are_dropped(self):
        result = parse_analysis_response('{"tags": ["a", 3, null, " b "]}')
        assert result.tags == ("a", "b")

    def test_unknown_value_confidence_is_dropped(self):
        result = parse_analysis_response('{"valueConfidence": "very high"}')
        assert result.value_confidence is None

    def test_known_value_confidence(self):
        result = parse_analysis_response('{"valueConfidence": "high"}')
        assert result.value_confidence is ValueConfidence.HIGH

    def test_boolean_confidence_uses_default(self):
        result = parse_analysis_response('{"confidence": true}', default_confidence=0.4)
        assert result.confidence == 0.4

    def test_non_json_raises(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response("not json")

    def test_json_array_raises(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response("[1, 2]")

    def test_empty_reply_raises(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response("   ")


class TestNormalizeEstimatedValue:
    """Tests for money formatting."""

    @pytest.mark.parametrize("raw,expected", [
        ("45", "45.00"),
        ("45.5", "45.50"),
        ("45.50", "45.50"),
        ("0", "0.00"),
    ])
    def test_valid_values(self, raw, expected):
        assert normalize_estimated_value(raw) == expected

    @pytest.mark.parametrize("raw", ["$45", "45.123", "-5", "forty", "", None, 45, "45.", "45.00\n", "45\n", "\u0664\u0665"])
    def test_invalid_values(self, raw):
        assert normalize_estimated_value(raw) is None
