"""Paper Extraction MCP - Tiered metadata extraction from academic PDFs."""

__version__ = "0.1.0"

from .config import ExtractionOptions
from .errors import ExtractionError
from .models import Confidence, ExtractionMethod, ExtractionResult
from .extraction import TieredExtractor, ScanClassifier
from .utils import NameNormalizer

# Import main server class for easy access
from .server import ExtractionMCPServer, create_server

__all__ = [
    "ExtractionMCPServer",
    "create_server",
    "TieredExtractor",
    "ScanClassifier",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionMethod",
    "Confidence",
    "ExtractionError",
    "NameNormalizer",
]
