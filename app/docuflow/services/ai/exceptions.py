"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    pass


class UnsupportedDocumentError(AIServiceError):
    """Raised when a document's media type cannot be sent to the model."""

    pass
