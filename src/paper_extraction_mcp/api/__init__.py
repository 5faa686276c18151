"""Clients for the external structuring service and DOI registry."""

from .crossref_client import CrossrefClient
from .grobid_client import GrobidClient

__all__ = ["CrossrefClient", "GrobidClient"]
