"""
NoteCraft Backend: Extraction Service
=======================================

What:  The extraction primitive: store the original, then extract its text.
Who:   LocalExtractor (ingestion pipeline) and POST /api/files/extract.

Workflow:
    1. FileService.validate_and_store()   size + type checks, disk write
    2. TextExtractionService.extract_text()
    3. On extraction failure the stored original is removed again, because
       the ingestion pipeline's upload-only fallback stores its own copy.

Error mapping:
    ValidationError / FileStorageError  → ExtractionError (message preserved)
    ExtractionError (incl. circuit open) → propagated unchanged
"""

import logging
from typing import Optional

from notecraft.exceptions import ExtractionError, FileStorageError, ValidationError
from notecraft.models.ingestion import ExtractionResult, InputFile
from notecraft.services.extraction_base import TextExtractionService
from notecraft.services.file_service import FileService, file_service
from notecraft.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)


class ExtractionService:

    def __init__(
        self,
        files: Optional[FileService] = None,
        extractor: Optional[TextExtractionService] = None,
    ):
        self.files = files or file_service
        self.extractor = extractor or gemini_service

    async def extract(self, file: InputFile) -> ExtractionResult:
        """
        Store a file and return its extracted text with the stored location.

        Raises:
            ExtractionError: the file was rejected, could not be stored,
                or the provider could not extract it.
        """
        try:
            absolute_path, stored = await self.files.validate_and_store(
                filename=file.name,
                content=file.content,
                declared_type=file.declared_type,
            )
        except (ValidationError, FileStorageError) as e:
            raise ExtractionError(message=e.message, context=e.context) from e

        try:
            text = await self.extractor.extract_text(absolute_path, stored.content_type)
        except ExtractionError:
            await self.files.cleanup_file(absolute_path)
            raise

        logger.info("Extracted %d chars from %s (%s)", len(text), file.name, stored.pathname)
        return ExtractionResult(
            filename=file.name,
            text=text,
            remote_url=stored.remote_url,
            content_type=stored.content_type,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
extraction_service = ExtractionService()
