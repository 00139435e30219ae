"""
NoteCraft Backend: File Storage Service
=========================================

What:  The upload primitive. Validates, stores and serves uploaded originals.
Why:   Both the extraction endpoint and the upload-only fallback need one
       place that decides which files are accepted and where they live.
How:   Resolves a content type (declared, else guessed from the extension),
       checks it against an allow-list and the size limit, then writes the
       bytes with aiofiles into date-organized directories.

Storage layout:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── quarterly-report-3f9c1a2b.pdf
                └── whiteboard-a81d00e4.png

    The stored name keeps a sanitized form of the original stem plus a random
    suffix, so two uploads of "report.pdf" never collide and no user input
    reaches the path unsanitized.

Security:
    - Extension and declared type are both mapped onto a fixed allow-list
    - Size limit enforced on the in-memory payload
    - Served paths are resolved and must stay inside storage_root
"""

import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from notecraft.config import settings
from notecraft.exceptions import FileStorageError, NotFoundError, ValidationError
from notecraft.models.ingestion import UploadResult

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = frozenset({
    # Images
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    # PDF
    "application/pdf",
    # Word
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    # Excel
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
    # PowerPoint
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Text
    "text/plain",
    "text/markdown",
    "application/json",
    "text/x-log",
})

# Used when the client does not declare a type
EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "md": "text/markdown",
    "json": "application/json",
    "log": "text/x-log",
    "rtf": "text/plain",
}

FALLBACK_MIME_TYPE = "application/octet-stream"

UNSUPPORTED_TYPE_MESSAGE = (
    "Unsupported file type. Allowed: images, PDF, Word, Excel, PowerPoint, text."
)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def guess_content_type(filename: str, declared_type: Optional[str] = None) -> str:
    """Declared type if present, else the extension table, else octet-stream."""
    if declared_type:
        return declared_type
    ext = Path(filename).suffix.lower().lstrip(".")
    return EXTENSION_MIME_TYPES.get(ext, FALLBACK_MIME_TYPE)


def sanitize_stem(filename: str) -> str:
    stem = _UNSAFE_NAME_CHARS.sub("-", Path(filename).stem).strip("-.")
    return stem[:64] or "file"


class FileService:
    """
    Manages validation, storage and lookup of uploaded originals.

    Lifecycle of an uploaded file:
        1. validate_size()          rejects payloads over max_upload_size
        2. validate_content_type()  resolves and checks the MIME type
        3. store_file()             writes YYYY/MM/DD/<stem>-<random>.<ext>
        4. public_url()             address that goes into the note
        5. cleanup_file()           removes it again if a later step fails
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_size(self, size: int) -> None:
        """Raises ValidationError when the payload exceeds the configured limit."""
        if size > settings.max_upload_size:
            max_mb = settings.max_upload_size // (1024 * 1024)
            raise ValidationError(
                message=f"File size should be less than {max_mb}MB",
                field="file",
                context={"max_size": settings.max_upload_size, "actual_size": size},
            )

    def validate_content_type(self, filename: str, declared_type: Optional[str] = None) -> str:
        """
        Resolve the file's content type and check it against the allow-list.

        Returns:
            The resolved MIME type.

        Raises:
            ValidationError if the type is not accepted.
        """
        content_type = guess_content_type(filename, declared_type)
        if content_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=UNSUPPORTED_TYPE_MESSAGE,
                field="file",
                context={"content_type": content_type, "filename": filename},
            )
        return content_type

    def _generate_storage_path(self, filename: str) -> Tuple[Path, str]:
        """Returns (absolute_path, pathname relative to storage_root)."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        ext = Path(filename).suffix.lower()
        unique_name = f"{sanitize_stem(filename)}-{uuid.uuid4().hex[:8]}{ext}"

        pathname = f"{date_dir}/{unique_name}"
        return self.storage_root / pathname, pathname

    async def store_file(self, content: bytes, filename: str) -> Tuple[str, str]:
        """
        Write content to disk.

        Returns:
            Tuple of (absolute_path, pathname).

        Raises:
            FileStorageError if the directory or the file cannot be written.
        """
        absolute_path, pathname = self._generate_storage_path(filename)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Upload failed",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", pathname, len(content))
        return str(absolute_path), pathname

    def public_url(self, pathname: str) -> str:
        return f"{settings.public_base_url}/api/files/{pathname}"

    def resolve(self, pathname: str) -> Path:
        """
        Map a stored pathname back to a file on disk.

        Raises:
            NotFoundError if the path escapes storage_root or does not exist.
        """
        candidate = (self.storage_root / pathname).resolve()
        if not candidate.is_relative_to(self.storage_root) or not candidate.is_file():
            raise NotFoundError(resource="file")
        return candidate

    async def cleanup_file(self, file_path: str) -> None:
        """
        Best-effort removal of a stored file after a later step failed.

        Never raises; a leftover file is not a user-facing error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except Exception as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        declared_type: Optional[str] = None,
    ) -> Tuple[str, UploadResult]:
        """
        Complete upload primitive.

        Validation runs cheapest first: size, then type, then the disk write.

        Returns:
            Tuple of (absolute_path, UploadResult). The absolute path lets the
            extraction step read the file without resolving it again.
        """
        self.validate_size(len(content))
        content_type = self.validate_content_type(filename, declared_type)
        absolute_path, pathname = await self.store_file(content, filename)

        return absolute_path, UploadResult(
            remote_url=self.public_url(pathname),
            pathname=pathname,
            content_type=content_type,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
