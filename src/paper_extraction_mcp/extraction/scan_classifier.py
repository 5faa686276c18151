"""Decide whether a PDF lacks a usable embedded text layer."""

import logging
from dataclasses import dataclass
from typing import Optional

from .text_layer import TextLayerExtractor

logger = logging.getLogger(__name__)


@dataclass
class ScanAssessment:
    """Inputs and outcome of one classification."""
    is_scanned: bool
    page_count: int
    chars_per_page: float
    reason: str


class ScanClassifier:
    """Page-count gated text-density heuristic.

    Only the first ``sample_pages`` pages are read. A document is classified
    as scanned when it reports at least ``min_pages`` pages and the sampled
    pages average fewer than ``min_chars_per_page`` characters. Shorter
    documents are never classified as scanned.

    Density divides the sampled text by the number of pages sampled. With
    ``per_document_page=True`` it divides by the reported page count instead,
    which makes long documents with one dense cover page count as scanned.

    The flat "first page has under 100 characters" rule is
    ``ScanClassifier(min_pages=1, min_chars_per_page=100)``.
    """

    def __init__(
        self,
        min_pages: int = 4,
        min_chars_per_page: float = 80.0,
        sample_pages: int = 1,
        per_document_page: bool = False,
        reader: Optional[TextLayerExtractor] = None,
    ):
        self.min_pages = min_pages
        self.min_chars_per_page = min_chars_per_page
        self.sample_pages = max(1, sample_pages)
        self.per_document_page = per_document_page
        self.reader = reader or TextLayerExtractor()

    def assess(self, pdf_bytes: bytes) -> ScanAssessment:
        """Classify and explain. Never raises."""
        try:
            text, page_count = self.reader.read_first_pages(pdf_bytes, max_pages=self.sample_pages)
        except Exception as e:
            logger.debug(f"Scan classification could not read the document: {e}")
            return ScanAssessment(False, 0, 0.0, f"could not read text layer ({e}); assuming usable text")

        if self.per_document_page:
            divisor = page_count or 1
        else:
            divisor = min(self.sample_pages, page_count) or 1
        density = len(text.strip()) / divisor

        if page_count < self.min_pages:
            return ScanAssessment(
                False, page_count, density,
                f"{page_count} page(s) is below the {self.min_pages}-page minimum for scan detection",
            )
        if density < self.min_chars_per_page:
            return ScanAssessment(
                True, page_count, density,
                f"{density:.0f} chars/page is below {self.min_chars_per_page:.0f}",
            )
        return ScanAssessment(False, page_count, density, f"{density:.0f} chars/page of embedded text")

    def is_scanned(self, pdf_bytes: bytes) -> bool:
        return self.assess(pdf_bytes).is_scanned
