"""Text heuristics and author name utilities."""

from .name_utils import NameNormalizer
from .text_heuristics import extract_fields, extract_ocr_fields, extract_doi

__all__ = ["NameNormalizer", "extract_fields", "extract_ocr_fields", "extract_doi"]
