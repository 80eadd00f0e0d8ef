# core/exceptions.py
"""Error taxonomy for the knowledge base core."""
from typing import Optional

from core.domain import ErrorCode


class KnowledgeBaseError(Exception):
    """Base error with a user-facing error code"""

    error_code: ErrorCode = ErrorCode.PERSISTENCE_FAILED

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging and API error bodies
        return f"[{self.error_code.value}] {self.message}"


class ValidationError(KnowledgeBaseError):
    """Empty or malformed input, caught before any remote call."""
    error_code = ErrorCode.VALIDATION_FAILED


class ExtractionTooShort(ValidationError):
    """Cleaned page text is below the minimum length; extraction likely failed."""
    error_code = ErrorCode.EXTRACTION_TOO_SHORT

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Extracted content is too short ({length} < {minimum} characters), "
            "might indicate an extraction failure"
        )


class DimensionMismatch(KnowledgeBaseError):
    """Vector size disagrees with the configured dimensionality. Not recoverable in-process."""
    error_code = ErrorCode.DIMENSION_MISMATCH

    def __init__(self, expected: int, actual: int, context: str = "vector"):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{context} has dimension {actual}, expected {expected}")


class RemoteServiceError(KnowledgeBaseError):
    """Embedding or generation call failed. Safe to retry."""
    error_code = ErrorCode.REMOTE_SERVICE_FAILED

    def __init__(self, message: str, operation: str = "remote call"):
        self.operation = operation
        super().__init__(message)


class NotFound(KnowledgeBaseError):
    """Passage id out of range. Indicates an internal consistency bug."""
    error_code = ErrorCode.NOT_FOUND


class PersistenceError(KnowledgeBaseError):
    """A commit could not be flushed and was rolled back completely."""
    error_code = ErrorCode.PERSISTENCE_FAILED


class PartialCommitError(KnowledgeBaseError):
    """Passages were persisted but the vector index was not; stores are misaligned on disk."""
    error_code = ErrorCode.PARTIAL_COMMIT


class KnowledgeBaseInconsistent(KnowledgeBaseError):
    """Stores are unreadable, or misaligned at load while the refuse policy is active."""
    error_code = ErrorCode.INCONSISTENT_STORE
