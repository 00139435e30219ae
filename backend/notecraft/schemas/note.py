"""
NoteCraft Backend: Pydantic Request/Response Schemas
======================================================

What:  The HTTP contract of the API.
How:   FastAPI validates request bodies and serializes responses with these
       models; the OpenAPI docs are generated from them.

Naming:
    The file primitives (/api/files/upload, /api/files/extract) answer with
    `contentType` so existing upload clients keep working; every other
    response uses snake_case.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Notes ─────────────────────────────────────────────────────────────────

class NoteCreate(BaseModel):
    """
    Body of POST /api/notes.

    title and content are optional at the schema level so a missing value
    produces the service's 400 message instead of a generic 422.
    """
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        seen = []
        for tag in (t.strip() for t in v):
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class NoteResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NoteDetailResponse(NoteResponse):
    """A note plus its rendered preview."""
    html: str = Field(description="Content rendered by the markup renderer")


class NoteListResponse(BaseModel):
    notes: List[NoteResponse]
    total_count: int


class DeleteResponse(BaseModel):
    ok: bool = True


# ── Ingestion & rendering ─────────────────────────────────────────────────

class PreviewSchema(BaseModel):
    name: str
    url: Optional[str] = None
    content_type: Optional[str] = None


class FileErrorSchema(BaseModel):
    file_name: str
    message: str


class IngestResponse(BaseModel):
    """
    Result of POST /api/ingest.

    `content` is the draft note content with the merged block appended;
    `title` is the submitted title, or a suggestion derived from the file names.
    """
    composed_text: str
    composed_links: str
    merged: str
    content: str
    title: str
    selected_files: List[str]
    previews: List[PreviewSchema]
    errors: List[FileErrorSchema] = Field(default_factory=list)


class RenderRequest(BaseModel):
    content: str = ""


class RenderResponse(BaseModel):
    html: str


# ── File primitives ───────────────────────────────────────────────────────

class UploadResponse(BaseModel):
    url: str
    pathname: str
    content_type: Optional[str] = Field(default=None, alias="contentType")

    model_config = ConfigDict(populate_by_name=True)


class ExtractResponse(BaseModel):
    url: Optional[str] = None
    filename: str
    content_type: Optional[str] = Field(default=None, alias="contentType")
    text: str

    model_config = ConfigDict(populate_by_name=True)


# ── Errors & health ───────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """
    Error body returned by every exception handler.

    Example:
        {
            "error": "validation_error",
            "message": "Both title and content are required.",
            "details": {"field": "title"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected, disconnected")
    extraction: str = Field(description="available, unavailable, circuit_open")
    uptime_seconds: float
