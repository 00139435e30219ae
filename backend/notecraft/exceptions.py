"""
NoteCraft Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the different error scenarios.
Why:   Targeted handling with the right HTTP status and a user-facing message
       that never leaks internal details.
How:   Each exception carries a message and an optional context dict.
       Global handlers (registered in main.py) turn them into JSON responses.

Exception Hierarchy:
    NoteCraftError (base)
    ├── ValidationError            → 400 Bad Request
    ├── UnauthorizedError          → 401 Unauthorized
    ├── NotFoundError              → 404 Not Found
    ├── ExtractionError(kind)      → 502 Bad Gateway
    │   └── CircuitBreakerOpenError → 503 Service Unavailable
    ├── UploadError(kind)          → 500 (401 when kind is UNAUTHORIZED)
    ├── FileStorageError           → 500 Internal Server Error
    ├── DatabaseError              → 500 Internal Server Error
    └── AggregateIngestionFailure  → 500 Internal Server Error

Collaborator failures (extract / upload) are classified by a single
FailureKind: UNAUTHORIZED when the caller has no session, OTHER for everything
else. The ingestion pipeline uses the kind to build its per-file notification.
"""

from enum import Enum
from typing import Any, Dict, Optional


# Shown to the user whenever a collaborator rejects an unauthenticated caller
SIGN_IN_MESSAGE = "Please sign in to upload files."


class FailureKind(str, Enum):
    """Normalized classification of extract/upload failures."""

    UNAUTHORIZED = "unauthorized"
    OTHER = "other"


class NoteCraftError(Exception):
    """
    Base exception for all NoteCraft application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteCraftError):
    """
    Raised when client input fails a business rule.

    When:    Unsupported file type, file too large, missing title/content.
    HTTP:    400 Bad Request (schema-level errors stay FastAPI's 422)
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(NoteCraftError):
    """Raised when a protected route is called without an owner identity."""

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteCraftError):
    """
    Raised when a requested resource does not exist (or belongs to another owner).

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class CollaboratorError(NoteCraftError):
    """
    Common base for failures of the extract and upload collaborators.

    `kind` is the only thing the ingestion pipeline inspects; `message` is
    what ends up in the per-file notification.
    """

    default_message = "Operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        kind: FailureKind = FailureKind.OTHER,
        context: Optional[Dict[str, Any]] = None,
    ):
        if kind is FailureKind.UNAUTHORIZED and message is None:
            message = SIGN_IN_MESSAGE
        super().__init__(message=message or self.default_message, context=context)
        self.kind = kind

    @property
    def is_unauthorized(self) -> bool:
        return self.kind is FailureKind.UNAUTHORIZED

    @classmethod
    def unauthorized(cls, context: Optional[Dict[str, Any]] = None) -> "CollaboratorError":
        return cls(kind=FailureKind.UNAUTHORIZED, context=context)


class ExtractionError(CollaboratorError):
    """
    Raised when a document's text could not be extracted.

    When:    Caller not signed in, Gemini failed after retries, file rejected
             by the storage step that precedes extraction.
    HTTP:    502 Bad Gateway (401 for UNAUTHORIZED)
    """

    default_message = "Extraction failed"


class CircuitBreakerOpenError(ExtractionError):
    """
    Raised when the extraction circuit breaker is OPEN.

    Subclasses ExtractionError so the ingestion pipeline treats it like any
    other extraction failure and falls back to upload-only.
    HTTP:    503 Service Unavailable with Retry-After
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Text extraction is temporarily unavailable due to repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class UploadError(CollaboratorError):
    """
    Raised when a file could not be written to blob storage.

    HTTP:    500 Internal Server Error (401 for UNAUTHORIZED)
    """

    default_message = "Upload failed"


class FileStorageError(NoteCraftError):
    """
    Raised when file system operations fail (disk full, permission denied).

    The message returned to clients stays generic; the OS error goes to the log.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NoteCraftError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. SQL, constraint
        names and table names are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AggregateIngestionFailure(NoteCraftError):
    """
    Raised when the ingestion fan-out itself breaks down.

    Per-file failures never raise; this is reserved for the task join failing,
    which is not expected in normal operation.
    """

    def __init__(
        self,
        message: str = "File ingestion could not be completed.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
