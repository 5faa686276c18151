"""Tiered PDF extraction: try each technique in order until one is good enough."""

import asyncio
import logging
from typing import Callable, List, Optional

import aiohttp

from ..config import ExtractionOptions
from ..errors import InputError, TierTimeout
from ..models import (
    ExtractionMethod,
    ExtractionResult,
    Failed,
    PartialRecord,
    Skipped,
    Success,
    TierOutcome,
)
from .ocr_extractor import configure_tesseract
from .tiers import ExtractionContext, ExtractionTier, default_tiers

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF-"
SIGNATURE_SEARCH_BYTES = 1024

FALLBACK_TITLE = "Extraction Failed"
FALLBACK_AUTHOR = "Unknown"
FALLBACK_TEXT = "PDF content extraction failed"


def _describe(error: BaseException) -> str:
    message = str(error) or "no details"
    return f"{type(error).__name__}: {message}"


class TieredExtractor:
    """Sequence the extraction tiers and build the final annotated result.

    Order: DOI lookup, GROBID, text layer, OCR, then a placeholder record.
    :meth:`extract` never raises; degraded quality shows up only in the
    result's ``confidence`` and ``diagnostics``.
    """

    def __init__(
        self,
        tiers: Optional[List[ExtractionTier]] = None,
        options: Optional[ExtractionOptions] = None,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.tiers = tiers if tiers is not None else default_tiers()
        self.options = options or ExtractionOptions.from_env()
        self.session_factory = session_factory
        configure_tesseract(self.options.tesseract_cmd)

    async def extract(self, pdf_bytes: bytes, options: Optional[ExtractionOptions] = None) -> ExtractionResult:
        """Extract the best available record from PDF bytes."""
        options = options or self.options
        ctx = ExtractionContext(b"", options)

        try:
            pdf_bytes = bytes(pdf_bytes or b"")
            ctx = ExtractionContext(pdf_bytes, options)
            result = await self._run(pdf_bytes, ctx)
        except Exception as e:
            logger.error(f"Tiered extraction completely failed: {e}", exc_info=True)
            ctx.note(f"Critical extraction error: {_describe(e)}")
            result = self._fallback(ctx)

        logger.info(
            f"PDF extraction complete - Method: {result.method.value}, "
            f"Confidence: {result.confidence.value}, "
            f"Elapsed: {result.elapsed_ms}ms, "
            f"Notes: {len(result.diagnostics)}"
        )
        return result

    def extract_sync(self, pdf_bytes: bytes, options: Optional[ExtractionOptions] = None) -> ExtractionResult:
        """Blocking wrapper around :meth:`extract` for non-async callers."""
        return asyncio.run(self.extract(pdf_bytes, options))

    async def _run(self, pdf_bytes: bytes, ctx: ExtractionContext) -> ExtractionResult:
        try:
            self._validate(pdf_bytes)
        except InputError as e:
            ctx.note(f"Invalid input, skipping all content tiers: {e}")
            return self._fallback(ctx)

        async with self.session_factory() as session:
            ctx.session = session
            for tier in self.tiers:
                outcome = await self._run_tier(tier, pdf_bytes, ctx)

                if isinstance(outcome, Success):
                    rejection = self._rejection_reason(tier.method, outcome.record, ctx.options)
                    if rejection is None:
                        ctx.note(f"{tier.name} extraction successful")
                        return self._finish(outcome.record, tier.method, ctx)
                    ctx.note(f"{tier.name} returned incomplete data: {rejection}")
                elif isinstance(outcome, Skipped):
                    ctx.note(f"{tier.name} skipped: {outcome.reason}")
                else:
                    ctx.note(f"{tier.name} failed: {_describe(outcome.error)}")

        ctx.note("All extraction methods failed")
        return self._fallback(ctx)

    async def _run_tier(self, tier: ExtractionTier, pdf_bytes: bytes, ctx: ExtractionContext) -> TierOutcome:
        remaining = ctx.remaining_ms()
        if remaining < max(tier.min_budget_ms(ctx.options), 1):
            return Skipped(f"time budget nearly exhausted ({max(remaining, 0)}ms left)")

        logger.info(f"Attempting {tier.name} extraction ({remaining}ms budget left)")
        try:
            return await asyncio.wait_for(tier.attempt(pdf_bytes, ctx), timeout=remaining / 1000)
        except asyncio.TimeoutError:
            return Failed(TierTimeout(f"no result within the remaining {remaining}ms"))
        except Exception as e:
            logger.warning(f"{tier.name} extraction failed: {e}")
            return Failed(e)

    def _rejection_reason(
        self, method: ExtractionMethod, record: PartialRecord, options: ExtractionOptions
    ) -> Optional[str]:
        """Why a tier's record is not good enough to return, or None to accept."""
        text_length = len(record.full_text.strip()) if record.full_text else 0

        if method == ExtractionMethod.DOI_LOOKUP:
            return None if record.title else "registry record has no title"
        if method == ExtractionMethod.STRUCTURED_PARSE:
            if not record.title:
                return "no title"
            if not text_length:
                return "title found but body text is empty"
            return None
        if method == ExtractionMethod.TEXT_LAYER:
            if text_length < options.min_text_layer_chars:
                return f"{text_length} chars of text (minimum {options.min_text_layer_chars})"
            return None
        if method == ExtractionMethod.OCR:
            if text_length < options.min_ocr_chars:
                return f"{text_length} chars recognized (minimum {options.min_ocr_chars})"
            return None
        return f"no acceptance rule for {method.value}"

    def _validate(self, pdf_bytes: bytes) -> None:
        if not pdf_bytes:
            raise InputError("empty PDF buffer")
        if PDF_SIGNATURE not in pdf_bytes[:SIGNATURE_SEARCH_BYTES]:
            raise InputError("buffer does not carry a %PDF- signature")

    def _finish(self, record: PartialRecord, method: ExtractionMethod, ctx: ExtractionContext) -> ExtractionResult:
        if record.page_count is None:
            record.page_count = ctx.page_count
        return ExtractionResult.from_record(
            record, method, ctx.elapsed_ms(), ctx.diagnostics, is_scanned=ctx.is_scanned
        )

    def _fallback(self, ctx: ExtractionContext) -> ExtractionResult:
        record = PartialRecord(
            title=FALLBACK_TITLE,
            authors=[FALLBACK_AUTHOR],
            abstract=FALLBACK_TEXT,
            full_text=FALLBACK_TEXT,
            page_count=ctx.page_count,
        )
        return ExtractionResult.from_record(
            record, ExtractionMethod.FALLBACK, ctx.elapsed_ms(), ctx.diagnostics, is_scanned=ctx.is_scanned
        )
