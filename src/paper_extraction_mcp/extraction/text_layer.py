"""Embedded text-layer reading with pdfplumber, falling back to PyPDF2."""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pdfplumber
import PyPDF2

from ..errors import InsufficientContent, ParseError

logger = logging.getLogger(__name__)


@dataclass
class TextLayerContent:
    """Text read from a PDF's embedded text layer."""
    text: str
    page_count: int


def _clean_page_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.replace('\x00', '').strip()


class TextLayerExtractor:
    """Read the embedded text layer of a PDF held in memory.

    All methods are blocking; async callers run them with ``asyncio.to_thread``.
    """

    def __init__(self, min_chars: int = 50):
        self.min_chars = min_chars

    def extract_text(self, pdf_bytes: bytes) -> TextLayerContent:
        """Text of every page, joined by blank lines.

        Raises ParseError when neither reader can open the document and
        InsufficientContent when it opens but yields almost no text.
        """
        try:
            pages, page_count = self._read_with_pdfplumber(pdf_bytes)
        except Exception as e:
            logger.warning(f"pdfplumber extraction failed: {e}, trying PyPDF2")
            try:
                pages, page_count = self._read_with_pypdf2(pdf_bytes)
            except Exception as fallback_error:
                logger.error(f"PyPDF2 fallback also failed: {fallback_error}")
                raise ParseError(
                    f"All text-layer readers failed: {e}; {fallback_error}"
                ) from fallback_error

        text = '\n\n'.join(page for page in pages if page)
        if len(text) < self.min_chars:
            raise InsufficientContent(
                f"Text layer yielded {len(text)} chars (minimum {self.min_chars})"
            )
        return TextLayerContent(text=text, page_count=page_count)

    def read_first_pages(self, pdf_bytes: bytes, max_pages: int = 1) -> Tuple[str, int]:
        """Text of the leading pages plus the document's reported page count.

        Raises on unreadable input; callers decide what a failure means.
        """
        try:
            pages, page_count = self._read_with_pdfplumber(pdf_bytes, max_pages=max_pages)
        except Exception as e:
            logger.debug(f"pdfplumber could not read first page: {e}, trying PyPDF2")
            pages, page_count = self._read_with_pypdf2(pdf_bytes, max_pages=max_pages)
        return '\n\n'.join(pages), page_count

    def _read_with_pdfplumber(self, pdf_bytes: bytes, max_pages: Optional[int] = None) -> Tuple[List[str], int]:
        pages = []
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            page_count = len(pdf.pages)
            for page_num, page in enumerate(pdf.pages[:max_pages]):
                try:
                    pages.append(_clean_page_text(page.extract_text()))
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num + 1}: {e}")
                    pages.append("")
        return pages, page_count

    def _read_with_pypdf2(self, pdf_bytes: bytes, max_pages: Optional[int] = None) -> Tuple[List[str], int]:
        pages = []
        reader = PyPDF2.PdfReader(io.BytesIO(pdf_bytes))
        page_count = len(reader.pages)
        limit = page_count if max_pages is None else min(page_count, max_pages)
        for page_num in range(limit):
            try:
                pages.append(_clean_page_text(reader.pages[page_num].extract_text()))
            except Exception as e:
                logger.warning(f"PyPDF2 failed on page {page_num + 1}: {e}")
                pages.append("")
        return pages, page_count
