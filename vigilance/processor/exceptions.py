class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class ExtractionNotFoundError(ProcessorError):
    """Raised when an extraction cannot be found in the database."""


class NarrativeNotFoundError(ProcessorError):
    """Raised when a narrative cannot be found in the database."""


class NarrativeError(ProcessorError):
    """Raised when a case narrative cannot be generated."""


class ProcessingCancelledError(ProcessorError):
    """Raised when a file's processing task observes its cancellation token."""
