"""Author name cleanup for records recovered from PDFs and registries."""

import re
import unicodedata
from typing import Iterable, List, Optional


class NameNormalizer:
    """Normalize author names coming from text heuristics, TEI and Crossref."""

    TITLE_PREFIXES = frozenset({'dr', 'prof', 'professor', 'mr', 'mrs', 'ms'})
    SUFFIXES = frozenset({'jr', 'sr', 'ii', 'iii', 'iv', 'ph.d', 'phd', 'md'})

    # Words that show up next to names on title pages but are never names
    NON_NAME_WORDS = frozenset({
        'abstract', 'introduction', 'university', 'department', 'institute',
        'school', 'college', 'laboratory', 'journal', 'proceedings', 'received',
        'accepted', 'published', 'keywords', 'email', 'correspondence', 'vol',
        'volume', 'issue', 'research', 'center', 'centre', 'faculty',
        'lab', 'labs', 'group', 'inc', 'the', 'of', 'for', 'in', 'on', 'with', 'a', 'an',
    })

    # Affiliation markers trailing a name: digits, *, †, ‡, §
    _MARKERS = re.compile(r'[\d\*†‡§¶]+$')
    _NAME_TOKEN = re.compile(r"^[A-Z][a-zA-Z'À-ſ\-]*\.?$|^[A-Z]\.$")

    @classmethod
    def remove_accents(cls, text: str) -> str:
        """Strip combining marks (José -> Jose)."""
        normalized = unicodedata.normalize('NFD', text)
        return ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')

    @classmethod
    def clean_name_part(cls, name_part: str) -> str:
        """Clean a single name or name part."""
        name_part = name_part.strip()

        # Remove common punctuation but preserve dots for initials
        name_part = re.sub(r'[,;]', '', name_part)
        name_part = re.sub(r'\s+', ' ', name_part)

        words = []
        for word in name_part.split(' '):
            word = cls._MARKERS.sub('', word)
            lowered = word.lower().rstrip('.')
            if not word or lowered in cls.TITLE_PREFIXES or lowered in cls.SUFFIXES:
                continue
            words.append(word)
        return ' '.join(words)

    @classmethod
    def format_name(cls, given: Optional[str], family: Optional[str]) -> Optional[str]:
        """Join given and family names, tolerating either being missing."""
        parts = [cls.clean_name_part(p) for p in (given, family) if p and p.strip()]
        name = ' '.join(p for p in parts if p)
        return name or None

    @classmethod
    def looks_like_person_name(cls, text: str) -> bool:
        """Rough check for "Firstname [M.] Lastname" shaped strings."""
        words = cls.clean_name_part(text).split()
        if not 2 <= len(words) <= 4:
            return False
        if any(w.lower().rstrip('.') in cls.NON_NAME_WORDS for w in words):
            return False
        return all(cls._NAME_TOKEN.match(w) for w in words)

    @classmethod
    def split_author_list(cls, line: str) -> List[str]:
        """Split "A. Smith, B. Jones and C. Wu" style lines into names."""
        parts = re.split(r',|;|&|\band\b', line)
        names = []
        for part in parts:
            name = cls.clean_name_part(part)
            if len(name) > 2:
                names.append(name)
        return names

    @classmethod
    def dedupe(cls, names: Iterable[str], limit: Optional[int] = None) -> List[str]:
        """Drop repeats (accent and case insensitive) keeping first appearance."""
        seen = set()
        result = []
        for name in names:
            key = cls.remove_accents(name).lower()
            if key in seen:
                continue
            seen.add(key)
            result.append(name)
            if limit is not None and len(result) >= limit:
                break
        return result
