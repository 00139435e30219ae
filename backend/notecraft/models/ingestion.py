"""
NoteCraft Backend: Ingestion Data Model
=========================================

What:  Value objects flowing through the multi-file ingestion pipeline.
Why:   The pipeline, its collaborators and the HTTP layer exchange these
       instead of framework objects, so the pipeline runs the same way in the
       server (in-process collaborators) and in a client (HTTP collaborators).
How:   Frozen dataclasses. Nothing here is persisted; a pipeline call owns
       the collaborator results only until it returns its IngestionOutcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from notecraft.exceptions import FailureKind


class Classification(str, Enum):
    """Whether a file can be read directly as text or needs extraction."""

    TEXT_LIKE = "text_like"
    BINARY_LIKE = "binary_like"


@dataclass(frozen=True)
class InputFile:
    """
    One file selected by the user.

    `declared_type` is the MIME type supplied by the client and may be empty;
    `content` is the full raw payload.
    """

    name: str
    content: bytes = field(repr=False)
    declared_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    def text(self) -> str:
        """Decode the payload as UTF-8, replacing undecodable bytes and dropping NULs."""
        return self.content.decode("utf-8", errors="replace").replace("\x00", "")

    @classmethod
    async def from_upload(cls, upload) -> "InputFile":
        """Build an InputFile from a FastAPI/Starlette UploadFile."""
        content = await upload.read()
        return cls(
            name=upload.filename or "upload",
            content=content,
            declared_type=upload.content_type or "",
        )


@dataclass(frozen=True)
class ExtractionResult:
    filename: str
    text: str
    remote_url: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class UploadResult:
    remote_url: str
    pathname: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class PreviewDescriptor:
    """Metadata for rendering a visual preview of one processed file."""

    name: str
    remote_url: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class FileSuccess:
    """Result of a file processed by any successful path."""

    preview: PreviewDescriptor
    text: Optional[str] = None
    link: Optional[str] = None


@dataclass(frozen=True)
class FileFailure:
    """Result of a file whose extraction and fallback upload both failed."""

    file_name: str
    message: str
    kind: FailureKind = FailureKind.OTHER


FileResult = Union[FileSuccess, FileFailure]


@dataclass(frozen=True)
class IngestionOutcome:
    composed_text: str = ""
    composed_links: str = ""
    previews: Tuple[PreviewDescriptor, ...] = ()

    @property
    def merged(self) -> str:
        """Text block first, then link block, separated by a blank line."""
        return "\n\n".join(part for part in (self.composed_text, self.composed_links) if part)
