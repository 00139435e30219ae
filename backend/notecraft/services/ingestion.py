"""
NoteCraft Backend: Multi-File Ingestion Pipeline
==================================================

What:  Turns a batch of user-selected files into note content.
How:   Every file becomes one asyncio task:

           text-like   ──▶ read text directly
           binary-like ──▶ extract ──(fails)──▶ upload-only ──(fails)──▶ notify

       Each task returns a tagged result (FileSuccess / FileFailure) instead of
       raising. Results are collected in completion order once every task has
       settled, and merged single-threaded into an IngestionOutcome.

Partial failure:
    One file failing never cancels or delays its siblings. A batch of N files
    always yields the contributions of the successful subset; each file that
    failed both extraction and fallback upload produces exactly one
    notification and nothing else.

Ordering:
    Contributions follow completion order, not input order. Callers may rely
    only on every successful contribution appearing exactly once.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from notecraft.exceptions import (
    SIGN_IN_MESSAGE,
    AggregateIngestionFailure,
    CollaboratorError,
    FailureKind,
)
from notecraft.models.ingestion import (
    Classification,
    FileFailure,
    FileResult,
    FileSuccess,
    IngestionOutcome,
    InputFile,
    PreviewDescriptor,
)
from notecraft.services.classifier import classify
from notecraft.services.extraction_base import DocumentExtractor, DocumentUploader

logger = logging.getLogger(__name__)

DEFAULT_TEXT_TYPE = "text/plain"
DEFAULT_FAILURE_MESSAGE = "Extraction failed"

TEXT_SEPARATOR = "\n\n"
LINK_SEPARATOR = "\n"

_LAST_EXTENSION = re.compile(r"\.[^.]+$")


# ══════════════════════════════════════════════════════════════════════════
# Notification sinks
# ══════════════════════════════════════════════════════════════════════════

class NotificationSink(ABC):
    """Receives one user-visible message per file that could not be ingested."""

    @abstractmethod
    def notify(self, file_name: str, message: str) -> None:
        ...


class LoggingSink(NotificationSink):
    """Default sink: per-file failures only reach the log."""

    def notify(self, file_name: str, message: str) -> None:
        logger.warning("File %s was not ingested: %s", file_name, message)


class CollectingSink(NotificationSink):
    """Keeps notifications in memory so the HTTP layer can return them."""

    def __init__(self) -> None:
        self.notifications: List[Tuple[str, str]] = []

    def notify(self, file_name: str, message: str) -> None:
        self.notifications.append((file_name, message))


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def markdown_link(label: str, url: str) -> str:
    return f"[{label}]({url})"


def _failure_from(file_name: str, error: Exception) -> FileFailure:
    if isinstance(error, CollaboratorError):
        return FileFailure(file_name=file_name, message=error.message, kind=error.kind)
    return FileFailure(file_name=file_name, message=str(error) or DEFAULT_FAILURE_MESSAGE)


def combine_failures(extraction: FileFailure, upload: FileFailure) -> FileFailure:
    """
    Reduce the two failures of one file to the single reported failure.

    A missing session on either step is reported as a sign-in problem;
    otherwise the extraction failure is the reason shown to the user, since
    the upload was only a fallback.
    """
    if FailureKind.UNAUTHORIZED in (extraction.kind, upload.kind):
        return FileFailure(
            file_name=extraction.file_name,
            message=SIGN_IN_MESSAGE,
            kind=FailureKind.UNAUTHORIZED,
        )
    return FileFailure(
        file_name=extraction.file_name,
        message=extraction.message or DEFAULT_FAILURE_MESSAGE,
        kind=FailureKind.OTHER,
    )


def compose(results: Iterable[FileResult]) -> IngestionOutcome:
    """Merge settled per-file results, preserving the order they are given in."""
    texts: List[str] = []
    links: List[str] = []
    previews: List[PreviewDescriptor] = []

    for result in results:
        if not isinstance(result, FileSuccess):
            continue
        if result.text:
            texts.append(result.text)
        if result.link:
            links.append(result.link)
        previews.append(result.preview)

    return IngestionOutcome(
        composed_text=TEXT_SEPARATOR.join(texts),
        composed_links=LINK_SEPARATOR.join(links),
        previews=tuple(previews),
    )


def suggest_title(file_names: Sequence[str]) -> str:
    """Default note title for a batch: the file's stem, or a merged-notes label."""
    if not file_names:
        return ""
    if len(file_names) == 1:
        return _LAST_EXTENSION.sub("", file_names[0])
    return f"Merged notes ({len(file_names)} files)"


def append_content(existing: str, merged: str) -> str:
    """Append a merged ingestion block to draft note content."""
    if existing and merged:
        return existing + TEXT_SEPARATOR + merged
    return existing or merged


# ══════════════════════════════════════════════════════════════════════════
# Pipeline
# ══════════════════════════════════════════════════════════════════════════

class IngestionPipeline:
    """
    Concurrent fan-out over a batch of files with per-file fallback.

    Collaborators are injected so the same pipeline runs in the server
    (LocalExtractor / LocalUploader) and in clients (RemoteExtractor /
    RemoteUploader). The pipeline holds no state between calls.
    """

    def __init__(
        self,
        extractor: DocumentExtractor,
        uploader: DocumentUploader,
        sink: Optional[NotificationSink] = None,
    ):
        self.extractor = extractor
        self.uploader = uploader
        self.sink = sink or LoggingSink()

    async def ingest(self, files: Sequence[InputFile]) -> IngestionOutcome:
        """
        Process every file concurrently and compose the note content.

        Returns:
            IngestionOutcome with text contributions, link contributions and
            previews in completion order. Empty outcome for an empty batch.

        Raises:
            AggregateIngestionFailure: only if the task join itself fails.
        """
        if not files:
            return IngestionOutcome()

        logger.info("Ingesting %d file(s)", len(files))
        tasks = [asyncio.ensure_future(self._process(f)) for f in files]
        settled: List[FileResult] = []

        try:
            for next_done in asyncio.as_completed(tasks):
                settled.append(await next_done)
        except Exception as e:
            for task in tasks:
                task.cancel()
            logger.error("Ingestion fan-out failed: %s", str(e), exc_info=True)
            raise AggregateIngestionFailure(
                context={"files": len(files), "settled": len(settled)},
            ) from e

        # Notifications go out only after every file has settled
        for result in settled:
            if isinstance(result, FileFailure):
                self._notify(result)

        outcome = compose(settled)
        logger.info(
            "Ingestion finished: %d file(s), %d preview(s), %d failure(s)",
            len(files),
            len(outcome.previews),
            len(settled) - len(outcome.previews),
        )
        return outcome

    def _notify(self, failure: FileFailure) -> None:
        try:
            self.sink.notify(failure.file_name, failure.message)
        except Exception as e:
            logger.error(
                "Notification for %s failed: %s | message: %s",
                failure.file_name,
                str(e),
                failure.message,
                exc_info=True,
            )

    async def _process(self, file: InputFile) -> FileResult:
        if classify(file) is Classification.TEXT_LIKE:
            return self._read_text(file)
        return await self._extract_or_upload(file)

    def _read_text(self, file: InputFile) -> FileResult:
        text = file.text().strip()
        return FileSuccess(
            preview=PreviewDescriptor(
                name=file.name,
                content_type=file.declared_type or DEFAULT_TEXT_TYPE,
            ),
            text=text or None,
        )

    async def _extract_or_upload(self, file: InputFile) -> FileResult:
        # Two-step chain: the first success wins
        extracted = await self._try_extract(file)
        if isinstance(extracted, FileSuccess):
            return extracted

        uploaded = await self._try_upload(file)
        if isinstance(uploaded, FileSuccess):
            return uploaded

        return combine_failures(extracted, uploaded)

    async def _try_extract(self, file: InputFile) -> FileResult:
        try:
            result = await self.extractor.extract(file)
        except Exception as e:
            logger.warning("Extraction failed for %s, falling back to upload: %s", file.name, str(e))
            return _failure_from(file.name, e)

        text = (result.text or "").strip()
        return FileSuccess(
            preview=PreviewDescriptor(
                name=file.name,
                remote_url=result.remote_url,
                content_type=result.content_type,
            ),
            text=text or None,
            link=markdown_link(file.name, result.remote_url) if result.remote_url else None,
        )

    async def _try_upload(self, file: InputFile) -> FileResult:
        try:
            result = await self.uploader.upload(file)
        except Exception as e:
            logger.warning("Fallback upload failed for %s: %s", file.name, str(e))
            return _failure_from(file.name, e)

        return FileSuccess(
            preview=PreviewDescriptor(
                name=file.name,
                remote_url=result.remote_url,
                content_type=result.content_type,
            ),
            link=markdown_link(file.name, result.remote_url),
        )
