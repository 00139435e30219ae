"""
NoteCraft Backend: Extraction & Upload Interfaces
===================================================

What:  Abstract base classes for the collaborators the ingestion pipeline and
       the extraction endpoint depend on.
Why:   The pipeline must not care whether extraction happens in-process
       (Gemini + local storage) or through a NoteCraft server over HTTP.
       Swapping implementations is the Strategy pattern.
How:   Concrete classes implement the abstract coroutines below.

Interfaces:
    TextExtractionService  provider that turns a stored file into text (GeminiService)
    DocumentExtractor      extract(file) -> ExtractionResult, raises ExtractionError
    DocumentUploader       upload(file) -> UploadResult, raises UploadError

Implementations:
    LocalExtractor / LocalUploader    services/collaborators.py (server side)
    RemoteExtractor / RemoteUploader  services/remote.py (HTTP client side)
"""

from abc import ABC, abstractmethod

from notecraft.models.ingestion import ExtractionResult, InputFile, UploadResult


class TextExtractionService(ABC):
    """
    Abstract interface for AI-powered text extraction from stored documents.

    Contract:
        - extract_text() accepts a file path and its MIME type, returns text
        - Implementations handle their own retry logic
        - All provider-specific errors are wrapped in ExtractionError
    """

    @abstractmethod
    async def extract_text(self, file_path: str, content_type: str) -> str:
        """
        Extract readable text from a document on disk.

        Args:
            file_path:    Absolute path to a file already accepted by FileService.
            content_type: MIME type recorded when the file was stored.

        Returns:
            The extracted text. Empty string when the document has no text.
            Never returns None.

        Raises:
            ExtractionError: the provider failed after all retries.
            CircuitBreakerOpenError: too many recent consecutive failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability test; must not consume extraction quota."""
        ...


class DocumentExtractor(ABC):
    """The `extract` collaborator of the ingestion pipeline."""

    @abstractmethod
    async def extract(self, file: InputFile) -> ExtractionResult:
        """
        Store the original and extract its text.

        Raises:
            ExtractionError: kind=UNAUTHORIZED when the caller has no session,
                kind=OTHER when no text could be produced.
        """
        ...


class DocumentUploader(ABC):
    """The upload-only fallback collaborator of the ingestion pipeline."""

    @abstractmethod
    async def upload(self, file: InputFile) -> UploadResult:
        """
        Store the original without extracting anything.

        Raises:
            UploadError: kind=UNAUTHORIZED when the caller has no session,
                kind=OTHER when the storage write fails.
        """
        ...
