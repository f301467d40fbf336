"""Viberank exception types.

Core functions raise these; the HTTP layer maps each one to a status code
in ``viberank.api.errors``. Messages are shown directly to end users.
"""

from typing import Optional


class ViberankError(Exception):
    """Base exception for all Viberank errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SubmissionValidationError(ViberankError):
    """A usage report failed validation and was rejected as a whole."""

    pass


class StorageError(ViberankError):
    """Underlying storage read/patch/insert failed."""

    def __init__(self, message: str, operation: str = "query"):
        self.operation = operation
        super().__init__(message)


class NotFoundError(ViberankError):
    """Referenced submission or profile does not exist."""

    pass


class AuthorizationError(ViberankError):
    """Caller identity does not permit the requested operation."""

    pass


class RateLimitExceededError(ViberankError):
    """Caller exceeded a rate limit. Includes retry_after hint in seconds."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message)
