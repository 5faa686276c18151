"""Result and outcome types shared by the extraction tiers."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ExtractionMethod(Enum):
    """Which tier produced a result."""
    DOI_LOOKUP = "doi-lookup"              # Crossref record for a first-page DOI
    STRUCTURED_PARSE = "structured-parse"  # GROBID TEI
    TEXT_LAYER = "text-layer"              # pdfplumber / PyPDF2
    OCR = "ocr"                            # Tesseract on rasterized pages
    FALLBACK = "fallback"                  # placeholder record


class Confidence(Enum):
    """Coarse trust label attached to a result."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


METHOD_CONFIDENCE: Dict[ExtractionMethod, Confidence] = {
    ExtractionMethod.DOI_LOOKUP: Confidence.HIGH,
    ExtractionMethod.STRUCTURED_PARSE: Confidence.HIGH,
    ExtractionMethod.TEXT_LAYER: Confidence.MEDIUM,
    ExtractionMethod.OCR: Confidence.LOW,
    ExtractionMethod.FALLBACK: Confidence.LOW,
}


@dataclass
class PartialRecord:
    """Fields recovered by a single tier."""
    title: Optional[str] = None
    authors: List[str] = None
    abstract: Optional[str] = None
    venue: Optional[str] = None
    doi: Optional[str] = None
    year: Optional[str] = None
    full_text: Optional[str] = None
    page_count: Optional[int] = None

    def __post_init__(self):
        if self.authors is None:
            self.authors = []

    @property
    def word_count(self) -> int:
        return len(self.full_text.split()) if self.full_text else 0


@dataclass(frozen=True)
class ExtractionResult:
    """Best-effort bibliographic record for one PDF.

    Built exactly once per extraction call and immutable afterwards. The
    confidence is always the one ``METHOD_CONFIDENCE`` assigns to the method;
    use :meth:`from_record` rather than the constructor to keep it that way.
    """
    method: ExtractionMethod
    confidence: Confidence
    elapsed_ms: int
    title: Optional[str] = None
    authors: Tuple[str, ...] = ()
    abstract: Optional[str] = None
    venue: Optional[str] = None
    doi: Optional[str] = None
    year: Optional[str] = None
    full_text: Optional[str] = None
    diagnostics: Tuple[str, ...] = ()
    page_count: Optional[int] = None
    word_count: Optional[int] = None
    is_scanned: Optional[bool] = None

    @classmethod
    def from_record(
        cls,
        record: PartialRecord,
        method: ExtractionMethod,
        elapsed_ms: int,
        diagnostics: List[str],
        is_scanned: Optional[bool] = None,
    ) -> "ExtractionResult":
        return cls(
            method=method,
            confidence=METHOD_CONFIDENCE[method],
            elapsed_ms=elapsed_ms,
            title=record.title,
            authors=tuple(record.authors),
            abstract=record.abstract,
            venue=record.venue,
            doi=record.doi,
            year=record.year,
            full_text=record.full_text,
            diagnostics=tuple(diagnostics),
            page_count=record.page_count,
            word_count=record.word_count if record.full_text else None,
            is_scanned=is_scanned,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        data["confidence"] = self.confidence.value
        data["authors"] = list(self.authors)
        data["diagnostics"] = list(self.diagnostics)
        return data


@dataclass
class Success:
    """Tier produced a candidate record."""
    record: PartialRecord


@dataclass
class Skipped:
    """Tier was not attempted."""
    reason: str


@dataclass
class Failed:
    """Tier was attempted and failed."""
    error: BaseException


TierOutcome = Union[Success, Skipped, Failed]
