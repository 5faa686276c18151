"""Crossref REST client for resolving a DOI to bibliographic metadata."""

import asyncio
import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from ..errors import LookupFailed, ParseError, ServiceUnavailable, TierTimeout
from ..models import PartialRecord
from ..utils.name_utils import NameNormalizer

logger = logging.getLogger(__name__)


class CrossrefClient:
    """Client for the Crossref ``/works/{doi}`` endpoint."""

    BASE_URL = "https://api.crossref.org/works"

    def __init__(
        self,
        mailto: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.mailto = mailto
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.session = session
        self._own_session = session is None
        self.headers = {}
        if mailto:
            # Crossref routes identified clients to its "polite" pool
            self.headers["User-Agent"] = f"paper-extraction-mcp/0.1 (mailto:{mailto})"

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

    async def get_work(self, doi: str, timeout_s: float = 10.0) -> PartialRecord:
        """Fetch and map the Crossref record for a DOI."""
        await self._ensure_session()
        url = f"{self.base_url}/{quote(doi, safe='/:;()._-')}"
        logger.debug(f"Crossref lookup: {url}")

        try:
            async with self.session.get(url, headers=self.headers, timeout=aiohttp.ClientTimeout(total=timeout_s)) as response:
                if response.status == 404:
                    raise LookupFailed(f"DOI {doi} not found in Crossref")
                if response.status != 200:
                    raise ServiceUnavailable(f"Crossref HTTP {response.status}")
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ParseError(f"Crossref returned invalid JSON: {e}") from e
        except asyncio.TimeoutError as e:
            raise TierTimeout(f"Crossref did not answer within {timeout_s:.1f}s") from e
        except aiohttp.ClientError as e:
            raise ServiceUnavailable(f"Crossref request failed: {e}") from e

        record = self.parse_work(data)
        if not record.title:
            raise LookupFailed(f"Crossref record for {doi} has no title")
        return record

    def parse_work(self, data: Dict[str, Any]) -> PartialRecord:
        """Map a Crossref response (or its ``message``) onto a record."""
        if not isinstance(data, dict):
            raise ParseError("Crossref response is not a JSON object")
        work = data.get('message', data)
        if not isinstance(work, dict):
            raise ParseError("Crossref message is not a JSON object")

        titles = work.get('title') or []
        title = titles[0].strip() if titles and isinstance(titles[0], str) else None

        authors = []
        for author in work.get('author') or []:
            name = NameNormalizer.format_name(author.get('given'), author.get('family'))
            if not name and author.get('name'):
                # Organisational authors only carry "name"
                name = author['name'].strip()
            if name:
                authors.append(name)

        venues = work.get('container-title') or []
        venue = venues[0] if venues else None

        abstract = self._clean_abstract(work.get('abstract'))
        full_text = '\n\n'.join(part for part in (title, abstract) if part) or None

        return PartialRecord(
            title=title,
            authors=authors,
            abstract=abstract,
            venue=venue,
            doi=work.get('DOI'),
            year=self._extract_year(work),
            full_text=full_text,
        )

    def _extract_year(self, work: Dict[str, Any]) -> Optional[str]:
        for key in ('published', 'published-print', 'published-online', 'issued'):
            parts = (work.get(key) or {}).get('date-parts') or []
            if parts and parts[0] and parts[0][0]:
                return str(parts[0][0])
        return None

    def _clean_abstract(self, abstract: Optional[str]) -> Optional[str]:
        """Crossref abstracts are JATS XML fragments; keep only the text."""
        if not abstract:
            return None
        text = re.sub(r'<[^>]+>', ' ', abstract)
        text = re.sub(r'\s+', ' ', text).strip()
        text = re.sub(r'^abstract\s+', '', text, flags=re.I)
        return text or None
