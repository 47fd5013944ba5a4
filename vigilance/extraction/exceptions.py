class ExtractionError(Exception):
    """Raised when the document-parsing service cannot return an extraction."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the parsing service call fails due to network/infrastructure issues."""
