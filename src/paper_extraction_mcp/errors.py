"""Exception taxonomy for the extraction tiers.

Tiers raise these; the orchestrator catches every one of them at the tier
boundary and turns it into a diagnostic note plus a fallthrough decision.
"""


class ExtractionError(Exception):
    """Base class for tier failures."""


class InputError(ExtractionError):
    """Empty or non-PDF input buffer."""


class ServiceUnavailable(ExtractionError):
    """A dependency was unreachable or answered with an error status."""


class TierTimeout(ExtractionError):
    """A bounded operation exceeded its time budget."""


class ParseError(ExtractionError):
    """A dependency returned a response that could not be parsed."""


class InsufficientContent(ExtractionError):
    """A tier produced output too small to trust."""


class LookupFailed(ExtractionError):
    """The bibliographic registry had no usable record for a DOI."""
