class ProgressPersistenceError(Exception):
    """Raised internally when a progress snapshot cannot be written."""
