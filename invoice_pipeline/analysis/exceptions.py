class AnalysisError(Exception):
    """Raised when invoice text analysis fails."""


class AnalysisValidationError(AnalysisError):
    """Raised when the model output does not match the {content, amount} schema."""


class AnalysisNetworkError(AnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
