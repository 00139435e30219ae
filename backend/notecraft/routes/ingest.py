"""
NoteCraft Backend: Ingest Route Handler
=========================================

What:  POST /api/ingest turns a batch of uploaded files into note content.
How:   Reads every multipart `files` part into an InputFile and runs the
       IngestionPipeline with in-process collaborators bound to the caller.

Request (multipart/form-data):
    files     zero or more files
    title     current draft title (optional)
    content   current draft content (optional); the merged block is appended

Anonymous callers are accepted: text-like files are still read, binary-like
files fail with the sign-in message and show up in `errors`. Files over the
upload size limit are skipped and reported in `errors` the same way.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from notecraft.auth import get_optional_user_id
from notecraft.exceptions import ValidationError
from notecraft.models.ingestion import InputFile
from notecraft.schemas.note import (
    ErrorResponse,
    FileErrorSchema,
    IngestResponse,
    PreviewSchema,
)
from notecraft.services.collaborators import LocalExtractor, LocalUploader
from notecraft.services.file_service import file_service
from notecraft.services.ingestion import (
    CollectingSink,
    IngestionPipeline,
    append_content,
    suggest_title,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Ingest"])


async def _read_all(files: List[UploadFile]) -> List[InputFile]:
    inputs = []
    for upload in files:
        try:
            inputs.append(await InputFile.from_upload(upload))
        finally:
            await upload.close()
    return inputs


def _within_size_limit(inputs: List[InputFile], sink: CollectingSink) -> List[InputFile]:
    """Oversize files are reported like any other per-file failure and skipped."""
    accepted = []
    for item in inputs:
        try:
            file_service.validate_size(item.size)
        except ValidationError as e:
            sink.notify(item.name, e.message)
            continue
        accepted.append(item)
    return accepted


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses={
        500: {"description": "Ingestion could not complete", "model": ErrorResponse},
    },
    summary="Merge uploaded files into note content",
    description=(
        "Text files are read directly; other files are extracted, or stored "
        "and linked when extraction fails. Contributions are merged in the "
        "order the files finish processing."
    ),
)
async def ingest_files(
    files: Optional[List[UploadFile]] = File(default=None),
    title: Optional[str] = Form(default=None),
    content: str = Form(default=""),
    owner_id: Optional[str] = Depends(get_optional_user_id),
) -> IngestResponse:
    inputs = await _read_all(files or [])
    names = [f.name for f in inputs]

    sink = CollectingSink()
    inputs = _within_size_limit(inputs, sink)
    pipeline = IngestionPipeline(
        extractor=LocalExtractor(owner_id),
        uploader=LocalUploader(owner_id),
        sink=sink,
    )
    outcome = await pipeline.ingest(inputs)

    return IngestResponse(
        composed_text=outcome.composed_text,
        composed_links=outcome.composed_links,
        merged=outcome.merged,
        content=append_content(content, outcome.merged),
        title=(title or "").strip() or suggest_title(names),
        selected_files=names,
        previews=[
            PreviewSchema(name=p.name, url=p.remote_url, content_type=p.content_type)
            for p in outcome.previews
        ],
        errors=[
            FileErrorSchema(file_name=name, message=message)
            for name, message in sink.notifications
        ],
    )
