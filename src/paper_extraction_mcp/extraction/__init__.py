"""PDF content extraction modules."""

from .ocr_extractor import OCRExtractor, TesseractEngine
from .orchestrator import TieredExtractor
from .scan_classifier import ScanAssessment, ScanClassifier
from .text_layer import TextLayerExtractor
from .tiers import (
    DoiLookupTier,
    ExtractionContext,
    ExtractionTier,
    OCRTier,
    StructuredParseTier,
    TextLayerTier,
    default_tiers,
)

__all__ = [
    "TieredExtractor",
    "ExtractionContext",
    "ExtractionTier",
    "DoiLookupTier",
    "StructuredParseTier",
    "TextLayerTier",
    "OCRTier",
    "default_tiers",
    "TextLayerExtractor",
    "ScanClassifier",
    "ScanAssessment",
    "OCRExtractor",
    "TesseractEngine",
]
