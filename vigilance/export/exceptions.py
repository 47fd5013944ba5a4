class ExportError(Exception):
    """Raised when an export cannot be produced."""
