"""
Catalog domain: items, analysis and legacy record migration.
"""

from .analysis import AnalysisError, ItemAnalyzer, VisionModelClient, parse_analysis_response
from .migration import materialize_all, materialize_image_urls
from .models import (
    PLACEHOLDER_ATTRIBUTES,
    CatalogItem,
    ItemAttributes,
    ValueConfidence,
    generate_barcode_data,
)

__all__ = [
    "AnalysisError",
    "ItemAnalyzer",
    "VisionModelClient",
    "parse_analysis_response",
    "materialize_all",
    "materialize_image_urls",
    "PLACEHOLDER_ATTRIBUTES",
    "CatalogItem",
    "ItemAttributes",
    "ValueConfidence",
    "generate_barcode_data",
]
