"""Async client for a GROBID-style document structuring service."""

import asyncio
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

import aiohttp

from ..errors import ParseError, ServiceUnavailable, TierTimeout
from ..models import PartialRecord
from ..utils.name_utils import NameNormalizer

logger = logging.getLogger(__name__)


def _strip_namespaces(root: ET.Element) -> ET.Element:
    """Drop '{ns}' prefixes so lookups work with or without the TEI namespace."""
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]
    return root


def _collapse(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    text = re.sub(r'\s+', ' ', text).strip()
    return text or None


def _find(node: Optional[ET.Element], *paths: str) -> Optional[ET.Element]:
    """First element matching any of the paths, or None."""
    if node is None:
        return None
    for path in paths:
        found = node.find(path)
        if found is not None:
            return found
    return None


def _text_of(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None:
        return None
    return _collapse(' '.join(elem.itertext()))


class GrobidClient:
    """Client for GROBID's liveness probe and full-text endpoint."""

    HEALTH_ENDPOINT = "/api/isalive"
    PARSE_ENDPOINT = "/api/processFulltextDocument"
    UPLOAD_FIELD = "input"
    MIN_RESPONSE_CHARS = 100

    def __init__(self, base_url: Optional[str] = None, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = (base_url or os.getenv("GROBID_URL", "http://localhost:8070")).rstrip('/')
        self.session = session
        self._own_session = session is None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if not self.session:
            self.session = aiohttp.ClientSession()

    async def close(self):
        if self._own_session and self.session:
            await self.session.close()
            self.session = None

    async def is_alive(self, timeout_s: float = 2.0) -> bool:
        """Lightweight liveness probe. Never raises."""
        await self._ensure_session()
        url = f"{self.base_url}{self.HEALTH_ENDPOINT}"
        try:
            async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=timeout_s)) as response:
                alive = response.status == 200
                logger.debug(f"GROBID liveness at {url}: HTTP {response.status}")
                return alive
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.debug(f"GROBID liveness probe failed at {url}: {e}")
            return False

    async def parse(self, pdf_bytes: bytes, timeout_s: float) -> PartialRecord:
        """Upload a PDF and parse the TEI response into a record."""
        await self._ensure_session()
        url = f"{self.base_url}{self.PARSE_ENDPOINT}"

        data = aiohttp.FormData()
        data.add_field(self.UPLOAD_FIELD, pdf_bytes, filename="paper.pdf", content_type="application/pdf")
        data.add_field("includeRawCitations", "1")
        data.add_field("includeRawAffiliations", "1")

        try:
            async with self.session.post(
                url, data=data, timeout=aiohttp.ClientTimeout(total=timeout_s)
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ServiceUnavailable(f"GROBID HTTP {response.status}: {error_text[:200]}")
                xml_content = await response.text()
        except asyncio.TimeoutError as e:
            raise TierTimeout(f"GROBID did not answer within {timeout_s:.1f}s") from e
        except aiohttp.ClientError as e:
            raise ServiceUnavailable(f"GROBID request failed: {e}") from e

        if not xml_content or len(xml_content) < self.MIN_RESPONSE_CHARS:
            raise ParseError("GROBID returned empty or minimal response")

        record = self.parse_tei(xml_content)
        logger.info(
            f"GROBID parse complete - title: {bool(record.title)}, "
            f"authors: {len(record.authors)}, words: {record.word_count}"
        )
        return record

    def parse_tei(self, xml_content: str) -> PartialRecord:
        """Parse TEI markup permissively.

        Missing nodes leave the corresponding field as None; only markup that
        is not XML at all raises ParseError.
        """
        try:
            root = _strip_namespaces(ET.fromstring(xml_content))
        except ET.ParseError as e:
            raise ParseError(f"Unparsable TEI XML: {e}") from e

        header = _find(root, './/teiHeader')
        source = _find(header, './/sourceDesc/biblStruct')

        title = _text_of(_find(
            header,
            './/titleStmt/title[@type="main"]',
            './/titleStmt/title',
            './/analytic/title',
        ))
        if title is None:
            title = _text_of(_find(root, './/title[@type="main"]'))

        return PartialRecord(
            title=title,
            authors=self._parse_authors(source if source is not None else header),
            abstract=_text_of(_find(root, './/profileDesc/abstract', './/abstract')),
            venue=_text_of(_find(source, './/monogr/title[@level="j"]', './/monogr/title[@level="m"]')),
            doi=_text_of(_find(source, './/idno[@type="DOI"]', './/idno[@type="doi"]')),
            year=self._parse_year(header),
            full_text=_text_of(_find(root, './/text/body', './/body')),
        )

    def _parse_authors(self, node: Optional[ET.Element]) -> List[str]:
        if node is None:
            return []
        authors = []
        for author in node.findall('.//author'):
            pers = _find(author, 'persName')
            if pers is None:
                pers = author
            forenames = ' '.join(
                f.text.strip() for f in pers.findall('forename') if f.text and f.text.strip()
            )
            surname = _find(pers, 'surname')
            name = NameNormalizer.format_name(forenames, surname.text if surname is not None else None)
            if name:
                authors.append(name)
        return NameNormalizer.dedupe(authors)

    def _parse_year(self, header: Optional[ET.Element]) -> Optional[str]:
        date = _find(
            header,
            './/sourceDesc//imprint/date[@type="published"]',
            './/sourceDesc//imprint/date',
            './/publicationStmt/date',
        )
        if date is None:
            return None
        when = date.get('when') or date.text or ''
        match = re.search(r'\d{4}', when)
        return match.group(0) if match else None
