"""OCR fallback: rasterize leading pages with PyMuPDF, recognize with Tesseract."""

import asyncio
import logging
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import fitz  # PyMuPDF
import pytesseract

from ..errors import InsufficientContent, ParseError

logger = logging.getLogger(__name__)

_cmd_lock = threading.Lock()


def configure_tesseract(tesseract_cmd: Optional[str]) -> None:
    """Point pytesseract at a Tesseract binary.

    pytesseract keeps the binary path in a module global, so this setting is
    process-wide. Call it once at configuration time, not per extraction.
    """
    if not tesseract_cmd:
        return
    with _cmd_lock:
        current = pytesseract.pytesseract.tesseract_cmd
        if current != tesseract_cmd:
            logger.info(f"Using Tesseract binary {tesseract_cmd}")
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd


async def _run_to_completion(func, *args):
    """Run a blocking call in a worker thread.

    On cancellation the worker is awaited before ``CancelledError`` is
    re-raised, so nothing the call uses is closed while it still runs.
    """
    worker = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(worker)
    except asyncio.CancelledError:
        await asyncio.wait([worker])
        raise


class TesseractEngine:
    """A recognition engine scoped to one OCR call.

    ``start`` verifies the Tesseract binary and opens a single worker thread
    that runs every recognition of the call; ``release`` shuts it down and
    may be called any number of times. The binary itself is chosen once per
    process with :func:`configure_tesseract`.
    """

    def __init__(self, language: str = "eng", config: str = "--psm 1"):
        self.language = language
        self.config = config
        self.version = None
        self._executor: Optional[ThreadPoolExecutor] = None

    def start(self) -> None:
        # Raises TesseractNotFoundError when the binary is missing
        self.version = pytesseract.get_tesseract_version()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tesseract")
        logger.debug(f"Tesseract {self.version} started ({self.language})")

    async def recognize(self, image_path: Path, timeout_s: float) -> str:
        if self._executor is None:
            raise RuntimeError("Tesseract engine is not running")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._image_to_string, image_path, timeout_s)

    def _image_to_string(self, image_path: Path, timeout_s: float) -> str:
        # pytesseract kills the tesseract process once its own timeout expires
        return pytesseract.image_to_string(
            str(image_path), lang=self.language, config=self.config, timeout=max(timeout_s, 1)
        )

    def release(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            logger.debug("Tesseract engine released")


@dataclass
class OCRContent:
    """Text recognized from the leading pages of a document."""
    text: str
    page_count: int
    pages_attempted: int
    pages_recognized: int
    page_errors: List[str] = field(default_factory=list)


class OCRExtractor:
    """Recognize text from a bounded number of leading pages.

    One engine is acquired per :meth:`recognize` call and released in a
    ``finally`` block however the page loop ends. A page that fails or runs
    past its own timeout is logged and skipped.
    """

    def __init__(
        self,
        engine_factory: Callable[[], TesseractEngine] = TesseractEngine,
        max_pages: int = 10,
        page_timeout_s: float = 15.0,
        min_chars: int = 100,
        zoom: float = 2.0,
    ):
        self.engine_factory = engine_factory
        self.max_pages = max_pages
        self.page_timeout_s = page_timeout_s
        self.min_chars = min_chars
        self.zoom = zoom

    async def recognize(self, pdf_bytes: bytes, timeout_s: float) -> OCRContent:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_s

        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise ParseError(f"PyMuPDF could not open document: {e}") from e
        page_count = doc.page_count

        engine = self.engine_factory()
        texts: List[str] = []
        page_errors: List[str] = []
        attempted = 0
        try:
            await _run_to_completion(engine.start)
            with tempfile.TemporaryDirectory(prefix="ocr-pages-") as page_dir:
                for index in range(min(page_count, self.max_pages)):
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        page_errors.append(f"OCR budget exhausted before page {index + 1}")
                        logger.warning(page_errors[-1])
                        break

                    attempted += 1
                    page_timeout = min(self.page_timeout_s, remaining)
                    try:
                        image_path = await _run_to_completion(
                            self._rasterize_page, doc, index, Path(page_dir)
                        )
                        page_text = await asyncio.wait_for(
                            engine.recognize(image_path, page_timeout), timeout=page_timeout
                        )
                    except asyncio.TimeoutError:
                        page_errors.append(f"page {index + 1} timed out after {page_timeout:.1f}s")
                        logger.warning(f"OCR {page_errors[-1]}")
                        continue
                    except Exception as e:
                        page_errors.append(f"page {index + 1} failed: {e}")
                        logger.warning(f"OCR {page_errors[-1]}")
                        continue

                    page_text = (page_text or "").strip()
                    if page_text:
                        texts.append(page_text)
        finally:
            engine.release()
            doc.close()

        text = '\n\n'.join(texts)
        logger.info(f"OCR recognized {len(texts)}/{attempted} pages, {len(text)} chars")
        if len(text) < self.min_chars:
            raise InsufficientContent(
                f"OCR produced {len(text)} chars from {attempted} page(s) (minimum {self.min_chars})"
            )
        return OCRContent(
            text=text,
            page_count=page_count,
            pages_attempted=attempted,
            pages_recognized=len(texts),
            page_errors=page_errors,
        )

    def _rasterize_page(self, doc: "fitz.Document", index: int, page_dir: Path) -> Path:
        pix = doc[index].get_pixmap(matrix=fitz.Matrix(self.zoom, self.zoom))
        image_path = page_dir / f"page-{index + 1:04d}.png"
        pix.save(str(image_path))
        return image_path
