"""Pattern-based recovery of bibliographic fields from raw PDF text.

Everything here is a pure function of its input text. The pattern tables are
module-level tuples of compiled expressions and are never mutated.
"""

import re
from datetime import datetime
from typing import List, Optional

from ..models import PartialRecord
from .name_utils import NameNormalizer

# Lines that look like running headers/footers rather than a title
RUNNING_HEADER_PATTERNS = (
    re.compile(r'^page\s+\d+', re.I),
    re.compile(r'^\d+(\s*(of|/)\s*\d+)?$', re.I),
    re.compile(r'^(vol\.?|volume)\s*\d+', re.I),
    re.compile(r'\bdoi\b|10\.\d{4,9}/', re.I),
    re.compile(r'https?://|www\.', re.I),
    re.compile(r'^arxiv:', re.I),
    re.compile(r'©|\bcopyright\b|all rights reserved', re.I),
    re.compile(r'^(preprint|accepted|received|submitted|published)\b', re.I),
    re.compile(r'\bjournal of\b|\bproceedings of\b|\bissn\b', re.I),
    re.compile(r'@'),
    re.compile(r'^(abstract|keywords|introduction)\b', re.I),
)

AUTHOR_LINE_PATTERN = re.compile(r'^\s*(?:authors?|by)\s*[:\-]?\s+(.+)$', re.I | re.M)

ABSTRACT_PATTERN = re.compile(
    r'\babstract\b[\s:.\-—]*(.+?)'
    r'(?=\n\s*(?:keywords?|key\s+words|index\s+terms|introduction|background'
    r'|(?:\d+|[ivx]+)\.?\s+[A-Z][A-Za-z ]{2,40}\n)|\Z)',
    re.I | re.S,
)

DOI_PATTERN = re.compile(r'\b(10\.\d{4,9}/[^\s"<>]+)', re.I)

YEAR_PATTERN = re.compile(r'(?<!\d)(19\d{2}|20\d{2})(?!\d)')

VENUE_PATTERN = re.compile(
    r'\b(published\s+in|journal\s+of|proceedings\s+of)\b([^\n]{0,100})',
    re.I,
)

TITLE_MIN_CHARS = 10
TITLE_MAX_CHARS = 200
TITLE_SCAN_LINES = 20
MAX_AUTHORS = 10
AUTHOR_SCAN_CHARS = 3000
ABSTRACT_MIN_CHARS = 50
ABSTRACT_MAX_CHARS = 2000
YEAR_SCAN_CHARS = 5000
MIN_YEAR = 1990


def _lines(text: str) -> List[str]:
    return [line.strip() for line in text.split('\n') if line.strip()]


def _is_running_header(line: str) -> bool:
    return any(pattern.search(line) for pattern in RUNNING_HEADER_PATTERNS)


def extract_title(text: str) -> Optional[str]:
    """First plausible title line near the top of the document."""
    for line in _lines(text)[:TITLE_SCAN_LINES]:
        if not TITLE_MIN_CHARS <= len(line) <= TITLE_MAX_CHARS:
            continue
        if ' ' not in line or _is_running_header(line):
            continue
        return line
    return None


def extract_authors(text: str, title: Optional[str] = None) -> List[str]:
    """Authors from an "Authors:"/"By" line, else name lines after the title."""
    match = AUTHOR_LINE_PATTERN.search(text[:AUTHOR_SCAN_CHARS])
    if match:
        names = [
            name for name in NameNormalizer.split_author_list(match.group(1))
            if NameNormalizer.looks_like_person_name(name)
        ]
        if names:
            return NameNormalizer.dedupe(names, limit=MAX_AUTHORS)

    lines = _lines(text)[:TITLE_SCAN_LINES]
    start = lines.index(title) + 1 if title in lines else 0
    names = []
    for line in lines[start:start + 5]:
        candidates = NameNormalizer.split_author_list(line)
        people = [c for c in candidates if NameNormalizer.looks_like_person_name(c)]
        if candidates and len(people) == len(candidates):
            names.extend(people)
        elif names:
            break
    return NameNormalizer.dedupe(names, limit=MAX_AUTHORS)


def extract_abstract(text: str) -> Optional[str]:
    """Text between an "Abstract" marker and the next section heading."""
    match = ABSTRACT_PATTERN.search(text)
    if not match:
        return None
    abstract = re.sub(r'\s+', ' ', match.group(1)).strip()
    if len(abstract) < ABSTRACT_MIN_CHARS:
        return None
    return abstract[:ABSTRACT_MAX_CHARS].rstrip()


def extract_doi(text: str) -> Optional[str]:
    match = DOI_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).rstrip('.,;:)]}\'"')


def extract_year(text: str, current_year: Optional[int] = None) -> Optional[str]:
    """First plausible publication year in the opening part of the text."""
    latest = current_year or datetime.now().year
    for match in YEAR_PATTERN.finditer(text[:YEAR_SCAN_CHARS]):
        if MIN_YEAR <= int(match.group(1)) <= latest:
            return match.group(1)
    return None


def extract_venue(text: str) -> Optional[str]:
    match = VENUE_PATTERN.search(text)
    if not match:
        return None
    phrase = match.group(1).lower()
    tail = match.group(2).strip(' :,.;')
    if not tail:
        return None
    if phrase.startswith('published'):
        return tail
    # Keep "Journal of ..." / "Proceedings of ..." as part of the venue name
    return f"{match.group(1).strip()}{match.group(2).rstrip(' :,.;')}"


def extract_fields(text: str) -> PartialRecord:
    """Run every field extractor over text-layer output."""
    title = extract_title(text)
    return PartialRecord(
        title=title,
        authors=extract_authors(text, title),
        abstract=extract_abstract(text),
        venue=extract_venue(text),
        doi=extract_doi(text),
        year=extract_year(text),
        full_text=text,
    )


def extract_ocr_fields(text: str, abstract_lines: int = 5) -> PartialRecord:
    """Lighter heuristic for OCR output, which has no reliable markers.

    The first substantial line becomes the title and the next few lines the
    abstract.
    """
    lines = [line for line in _lines(text) if len(line) >= TITLE_MIN_CHARS]
    title = None
    abstract = None
    if lines:
        title = lines[0][:TITLE_MAX_CHARS]
        following = ' '.join(lines[1:1 + abstract_lines]).strip()
        abstract = following[:ABSTRACT_MAX_CHARS] or None
    return PartialRecord(
        title=title,
        abstract=abstract,
        doi=extract_doi(text),
        year=extract_year(text),
        full_text=text,
    )
