"""
Error types for Mindsort.

Every error carries a stable machine-checkable code and a message that is
safe to show to the user. Surfaces (API, CLI, bots) map these to their own
presentation; nothing here knows about HTTP.
"""


class MindsortError(Exception):
    """Base class for all Mindsort errors."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class InvalidInput(MindsortError):
    """Malformed or missing required fields."""

    code = "invalid_input"


class Unauthorized(MindsortError):
    """No valid session."""

    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(MindsortError):
    """Entity absent, or owned by someone else. Same signal for both."""

    code = "not_found"

    def __init__(self, message: str = "Chunk not found or access denied"):
        super().__init__(message)


class ValidationError(MindsortError):
    """Semantically invalid value (unknown category, empty content, ...)."""

    code = "validation_error"


class ClassificationUnavailable(MindsortError):
    """The external completion call failed or timed out."""

    code = "classification_unavailable"

    def __init__(self, message: str = "Failed to categorize text"):
        super().__init__(message)


class MalformedClassifierOutput(MindsortError):
    """The model answered, but not in the expected shape."""

    code = "malformed_classifier_output"

    def __init__(self, message: str = "Invalid response format from AI model"):
        super().__init__(message)


class PersistenceError(MindsortError):
    """Store operation failed for reasons opaque to the caller."""

    code = "persistence_error"
