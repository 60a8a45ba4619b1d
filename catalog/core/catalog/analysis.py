"""
Item analysis logic and prompt management.

This module turns a photo into catalog attributes: name, description,
category, tags and a resale value estimate. It's framework-agnostic and
doesn't know which model provider is on the other end.

Analysis is a nice-to-have for an upload, never a requirement. If the model
is unreachable, misconfigured or returns garbage, the item is still created
with placeholder attributes the user can edit later.

The prompts are here, not in config, because they're core business logic.
"""

import json
import logging
import re
from typing import Any, Optional, Protocol

from .models import PLACEHOLDER_ATTRIBUTES, ItemAttributes, ValueConfidence

logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE_THRESHOLD = 0.4

_VALUE_PATTERN = re.compile(r"[0-9]+(\.[0-9]{1,2})?")
_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class VisionModelClient(Protocol):
    """
    Interface for vision-capable LLM clients.

    The analyzer picks the model; the client only knows how to send one
    image plus prompts and return the text reply.
    """

    async def analyze_image(
        self,
        image: bytes,
        media_type: str,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> str:
        """Analyze an image and return the text response."""
        ...


class AnalysisError(Exception):
    """Raised when a model reply can't be turned into attributes."""
    pass


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You catalog household possessions from photos for a personal inventory app.
Respond with a single JSON object and nothing else."""


FAST_USER_PROMPT = """Analyze this item image and return JSON with these fields:
{
  "name": "Short descriptive name for the item",
  "description": "Brief description of the item",
  "category": "Category (Electronics, Clothing, Furniture, Collectibles, Books, Tools, Kitchen, Sports, Toys, Other)",
  "tags": ["relevant", "searchable", "tags"],
  "confidence": 0.0-1.0,
  "estimatedValue": "USD resale value as decimal string (e.g., '45.00')",
  "valueConfidence": "low|medium|high",
  "valueRationale": "Brief 1-sentence explanation of the valuation"
}

For value estimation:
- Base on secondary market prices (eBay, Craigslist, Facebook Marketplace), NOT retail
- Be conservative - account for negotiation room and platform fees
- Consider: brand recognition, visible condition, age, market demand
- If unable to estimate confidently, set valueConfidence to low"""


PREMIUM_USER_PROMPT = FAST_USER_PROMPT + """

Consider these factors carefully:
1. Brand Recognition - Known brands command higher prices
2. Condition Assessment - Visible wear, damage, or pristine state
3. Age & Vintage Status - Newer items vs collectible vintage
4. Market Demand - Current popularity and seasonal factors
5. Completeness - Missing parts or accessories reduce value
6. Rarity & Collectibility - Limited editions or discontinued items

Price guidance by category:
- Electronics: Depreciate 20-50% from retail, more for older tech
- Clothing: 10-30% of retail unless designer/vintage
- Furniture: 20-40% of retail, condition critical
- Collectibles: Research comparable sales carefully
- Books: Usually $1-10 unless rare/signed
- Tools: Hold value well if quality brand, 40-60% of retail"""


# ---------------------------------------------------------------------------
# Analyzer Service
# ---------------------------------------------------------------------------

class ItemAnalyzer:
    """
    Runs the tiered analysis policy.

    The fast model handles most photos. When it reports low confidence,
    the same photo goes to the premium model and that answer wins.

    vision_client may be None (e.g. no API key configured); analyze()
    then raises and analyze_or_placeholder() falls back.
    """

    def __init__(
        self,
        vision_client: Optional[VisionModelClient],
        fast_model: Optional[str] = None,
        premium_model: Optional[str] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._vision_client = vision_client
        self._fast_model = fast_model
        self._premium_model = premium_model
        self._confidence_threshold = confidence_threshold

    async def analyze(self, image: bytes, media_type: str = "image/jpeg") -> ItemAttributes:
        if self._vision_client is None:
            raise AnalysisError("No vision model client configured")

        fast_reply = await self._vision_client.analyze_image(
            image=image,
            media_type=media_type,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=FAST_USER_PROMPT,
            model=self._fast_model,
        )
        fast = parse_analysis_response(fast_reply, default_confidence=0.4)

        if fast.confidence >= self._confidence_threshold:
            return fast

        logger.info(
            "Low confidence analysis, escalating to premium model",
            extra={"confidence": fast.confidence},
        )

        premium_reply = await self._vision_client.analyze_image(
            image=image,
            media_type=media_type,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=PREMIUM_USER_PROMPT,
            model=self._premium_model,
        )
        return parse_analysis_response(premium_reply, default_confidence=0.9)

    async def analyze_or_placeholder(self, image: bytes, media_type: str = "image/jpeg") -> ItemAttributes:
        """
        Analyze, or return placeholder attributes if anything goes wrong.

        A failed analysis must never fail the upload that triggered it.
        """
        try:
            return await self.analyze(image, media_type)
        except Exception as e:
            logger.error(
                "Item analysis failed, using placeholder attributes",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return PLACEHOLDER_ATTRIBUTES


# ---------------------------------------------------------------------------
# Response Parsing
# ---------------------------------------------------------------------------

def parse_analysis_response(raw_response: str, default_confidence: float = 0.4) -> ItemAttributes:
    """
    Parse and normalize a model reply.

    Anything outside the expected shape is dropped rather than trusted:
    a malformed value estimate becomes None, unknown confidence tiers
    become None, non-string tags are discarded.
    """
    data = _load_json_object(raw_response)

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = default_confidence

    return ItemAttributes(
        name=_text_or_default(data.get("name"), "Item"),
        description=_text_or_default(data.get("description"), "Unknown item"),
        category=_text_or_default(data.get("category"), "Uncategorized"),
        tags=_normalize_tags(data.get("tags")),
        confidence=float(confidence),
        estimated_value=normalize_estimated_value(data.get("estimatedValue")),
        value_confidence=_normalize_value_confidence(data.get("valueConfidence")),
        value_rationale=data.get("valueRationale") if isinstance(data.get("valueRationale"), str) else None,
    )


def normalize_estimated_value(value: Any) -> Optional[str]:
    """'45' -> '45.00', '45.5' -> '45.50'; anything else -> None."""
    if not isinstance(value, str) or not _VALUE_PATTERN.fullmatch(value):
        return None

    whole, _, cents = value.partition(".")
    return f"{whole}.{cents.ljust(2, '0')}"


def _load_json_object(raw_response: str) -> dict[str, Any]:
    if not raw_response or not raw_response.strip():
        raise AnalysisError("Empty response from model")

    text = raw_response.strip()
    fenced = _CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Model response is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise AnalysisError("Model response is not a JSON object")

    return data


def _text_or_default(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _normalize_tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(tag.strip() for tag in value if isinstance(tag, str) and tag.strip())


def _normalize_value_confidence(value: Any) -> Optional[ValueConfidence]:
    try:
        return ValueConfidence(value)
    except ValueError:
        return None
