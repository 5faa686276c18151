"""Extraction tiers behind a common ``attempt(pdf_bytes, ctx)`` contract.

A tier returns ``Success`` with whatever record it recovered or ``Skipped``
with a reason, and raises on failure. Deciding whether a ``Success`` is good
enough, and converting exceptions into ``Failed``, is the orchestrator's job.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

import aiohttp

from ..api.crossref_client import CrossrefClient
from ..api.grobid_client import GrobidClient
from ..config import ExtractionOptions
from ..models import ExtractionMethod, Skipped, Success, TierOutcome
from ..utils.text_heuristics import extract_doi, extract_fields, extract_ocr_fields
from .ocr_extractor import OCRExtractor, TesseractEngine
from .scan_classifier import ScanAssessment, ScanClassifier
from .text_layer import TextLayerExtractor

logger = logging.getLogger(__name__)


class ExtractionContext:
    """State for a single extraction call.

    Holds the diagnostics trail, the time budget, the HTTP session shared by
    the network tiers, and facts about the document that more than one tier
    needs (first-page text, scan classification), each computed at most once.
    """

    def __init__(
        self,
        pdf_bytes: bytes,
        options: ExtractionOptions,
        session: Optional[aiohttp.ClientSession] = None,
        reader: Optional[TextLayerExtractor] = None,
        classifier: Optional[ScanClassifier] = None,
    ):
        self._pdf_bytes = pdf_bytes
        self.options = options
        self.session = session
        self.reader = reader or TextLayerExtractor()
        self.classifier = classifier or ScanClassifier(
            min_pages=options.scan_min_pages,
            min_chars_per_page=options.scan_min_chars_per_page,
            reader=self.reader,
        )
        self.diagnostics: List[str] = []
        self.started_at = time.monotonic()
        self.structured_service_healthy: Optional[bool] = None
        self._first_page: Optional[Tuple[str, int]] = None
        self._scan: Optional[ScanAssessment] = None

    def note(self, message: str) -> None:
        self.diagnostics.append(message)
        logger.info(message)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    def remaining_ms(self) -> int:
        return self.options.max_timeout_ms - self.elapsed_ms()

    async def first_page(self) -> Tuple[str, int]:
        """First-page text and reported page count; ("", 0) if unreadable."""
        if self._first_page is None:
            try:
                self._first_page = await asyncio.to_thread(self.reader.read_first_pages, self._pdf_bytes, 1)
            except Exception as e:
                logger.debug(f"First page unreadable: {e}")
                self._first_page = ("", 0)
        return self._first_page

    async def scan_assessment(self) -> ScanAssessment:
        if self._scan is None:
            self._scan = await asyncio.to_thread(self.classifier.assess, self._pdf_bytes)
        return self._scan

    @property
    def is_scanned(self) -> Optional[bool]:
        return self._scan.is_scanned if self._scan is not None else None

    @property
    def page_count(self) -> Optional[int]:
        if self._scan is not None and self._scan.page_count:
            return self._scan.page_count
        if self._first_page is not None and self._first_page[1]:
            return self._first_page[1]
        return None


class ExtractionTier:
    """Base class for one extraction technique."""

    method: ExtractionMethod
    name = "tier"

    def min_budget_ms(self, options: ExtractionOptions) -> int:
        """Budget below which the orchestrator skips this tier."""
        return 0

    async def attempt(self, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        raise NotImplementedError


class DoiLookupTier(ExtractionTier):
    """Resolve a DOI printed on the first page through Crossref."""

    method = ExtractionMethod.DOI_LOOKUP
    name = "DOI lookup"

    def __init__(self, client_factory: Callable[..., CrossrefClient] = CrossrefClient):
        self.client_factory = client_factory

    async def attempt(self, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        first_page_text, _ = await ctx.first_page()
        doi = extract_doi(first_page_text)
        if not doi:
            return Skipped("no DOI found on first page")

        ctx.note(f"DOI {doi} found on first page, querying Crossref")
        client = self.client_factory(
            mailto=ctx.options.crossref_mailto,
            base_url=ctx.options.crossref_url,
            session=ctx.session,
        )
        timeout_s = min(ctx.options.lookup_timeout_ms, max(ctx.remaining_ms(), 0)) / 1000
        try:
            record = await client.get_work(doi, timeout_s=timeout_s)
        finally:
            await client.close()
        record.doi = record.doi or doi
        return Success(record)


class StructuredParseTier(ExtractionTier):
    """GROBID full-text parse, gated by a liveness probe."""

    method = ExtractionMethod.STRUCTURED_PARSE
    name = "GROBID"

    def __init__(self, client_factory: Callable[..., GrobidClient] = GrobidClient):
        self.client_factory = client_factory

    def min_budget_ms(self, options: ExtractionOptions) -> int:
        return options.structured_min_budget_ms

    async def attempt(self, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        client = self.client_factory(base_url=ctx.options.grobid_url, session=ctx.session)
        try:
            if ctx.structured_service_healthy is None:
                ctx.structured_service_healthy = await client.is_alive(
                    timeout_s=ctx.options.health_timeout_ms / 1000
                )
            if not ctx.structured_service_healthy:
                return Skipped(f"structured-parser service unavailable at {client.base_url}")

            record = await client.parse(pdf_bytes, timeout_s=max(ctx.remaining_ms(), 0) / 1000)
        finally:
            await client.close()
        return Success(record)


class TextLayerTier(ExtractionTier):
    """Embedded text layer plus heuristic field recovery."""

    method = ExtractionMethod.TEXT_LAYER
    name = "text layer"

    def __init__(self, extractor: Optional[TextLayerExtractor] = None):
        self.extractor = extractor

    async def attempt(self, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        scan = await ctx.scan_assessment()
        if scan.is_scanned:
            return Skipped(f"PDF appears to be scanned ({scan.reason})")
        ctx.note(f"Embedded text layer usable ({scan.reason})")

        extractor = self.extractor or ctx.reader
        content = await asyncio.to_thread(extractor.extract_text, pdf_bytes)
        record = extract_fields(content.text)
        record.page_count = content.page_count
        return Success(record)


class OCRTier(ExtractionTier):
    """Tesseract over rasterized leading pages."""

    method = ExtractionMethod.OCR
    name = "OCR"

    def __init__(self, extractor: Optional[OCRExtractor] = None):
        self.extractor = extractor

    def min_budget_ms(self, options: ExtractionOptions) -> int:
        return options.ocr_min_budget_ms

    def _build_extractor(self, options: ExtractionOptions) -> OCRExtractor:
        return OCRExtractor(
            engine_factory=lambda: TesseractEngine(language=options.ocr_language),
            max_pages=options.ocr_max_pages,
            page_timeout_s=options.ocr_page_timeout_ms / 1000,
            min_chars=options.min_ocr_chars,
        )

    async def attempt(self, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        if not ctx.options.enable_ocr:
            return Skipped("OCR disabled, skipping scanned PDF processing")

        extractor = self.extractor or self._build_extractor(ctx.options)
        content = await extractor.recognize(pdf_bytes, timeout_s=max(ctx.remaining_ms(), 0) / 1000)
        if content.page_errors:
            ctx.note(f"OCR skipped {len(content.page_errors)} page(s): {'; '.join(content.page_errors[:3])}")

        record = extract_ocr_fields(content.text)
        record.page_count = content.page_count
        return Success(record)


def default_tiers() -> List[ExtractionTier]:
    """Tiers in the order they are attempted: cheapest and most reliable first."""
    return [DoiLookupTier(), StructuredParseTier(), TextLayerTier(), OCRTier()]
