"""Extraction options and their environment defaults."""

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_GROBID_URL = "http://localhost:8070"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_CROSSREF_URL = "https://api.crossref.org/works"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ExtractionOptions:
    """Per-call settings for :class:`TieredExtractor`.

    Only ``grobid_url``, ``enable_ocr`` and ``max_timeout_ms`` are meant to be
    varied per call; the rest are tuning knobs with conservative defaults.
    """
    grobid_url: str = DEFAULT_GROBID_URL
    enable_ocr: bool = False
    max_timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Acceptance thresholds
    min_text_layer_chars: int = 200
    min_ocr_chars: int = 100

    # Individual call budgets
    health_timeout_ms: int = 2000
    lookup_timeout_ms: int = 10000
    ocr_page_timeout_ms: int = 15000

    # Tiers are skipped when less than this much budget is left
    structured_min_budget_ms: int = 3000
    ocr_min_budget_ms: int = 5000

    # Scan classifier
    scan_min_pages: int = 4
    scan_min_chars_per_page: float = 80.0

    # OCR
    ocr_max_pages: int = 10
    ocr_language: str = "eng"
    # Process-wide: applied once when a TieredExtractor is built
    tesseract_cmd: Optional[str] = None

    crossref_url: str = DEFAULT_CROSSREF_URL
    crossref_mailto: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "ExtractionOptions":
        """Build options from environment variables, then apply overrides."""
        options = cls(
            grobid_url=os.getenv("GROBID_URL", DEFAULT_GROBID_URL),
            enable_ocr=_env_bool("ENABLE_OCR", False),
            max_timeout_ms=_env_int("EXTRACTION_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            ocr_max_pages=_env_int("OCR_MAX_PAGES", 10),
            ocr_language=os.getenv("OCR_LANGUAGE", "eng"),
            tesseract_cmd=os.getenv("TESSERACT_CMD") or None,
            crossref_url=os.getenv("CROSSREF_URL", DEFAULT_CROSSREF_URL),
            crossref_mailto=os.getenv("CROSSREF_MAILTO") or None,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(options, **overrides) if overrides else options
