class AnalysisError(Exception):
    """Raised when the language-model call or its output is unusable."""


class AnalysisNetworkError(AnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
