"""
NoteCraft Backend: File Route Handlers
========================================

What:  The upload and extraction primitives over HTTP, plus file serving.

    POST /api/files/upload     store the original  → {url, pathname, contentType}
    POST /api/files/extract    store + extract     → {url, filename, contentType, text}
    GET  /api/files/{path}     serve a stored original

Both POST routes need an owner (401 "Please sign in to upload files."
otherwise) and take a multipart `file` field. RemoteExtractor and
RemoteUploader are the client side of these two routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from notecraft.auth import get_uploading_user_id
from notecraft.exceptions import ValidationError
from notecraft.models.ingestion import InputFile
from notecraft.schemas.note import ErrorResponse, ExtractResponse, UploadResponse
from notecraft.services.extraction_service import extraction_service
from notecraft.services.file_service import file_service, guess_content_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


async def _read_upload(file: Optional[UploadFile]) -> InputFile:
    if file is None:
        raise ValidationError(message="No file uploaded", field="file")
    try:
        return await InputFile.from_upload(file)
    finally:
        await file.close()


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Missing, oversize or unsupported file", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        500: {"description": "Upload failed", "model": ErrorResponse},
    },
    summary="Store a file without extracting it",
)
async def upload_file(
    file: Optional[UploadFile] = File(default=None),
    owner_id: str = Depends(get_uploading_user_id),
) -> UploadResponse:
    upload = await _read_upload(file)
    logger.info("Upload from %s: %s (%d bytes)", owner_id, upload.name, upload.size)

    _, result = await file_service.validate_and_store(
        filename=upload.name,
        content=upload.content,
        declared_type=upload.declared_type,
    )
    return UploadResponse(
        url=result.remote_url,
        pathname=result.pathname,
        content_type=result.content_type,
    )


@router.post(
    "/extract",
    response_model=ExtractResponse,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        502: {"description": "Extraction failed", "model": ErrorResponse},
        503: {"description": "Extraction temporarily unavailable", "model": ErrorResponse},
    },
    summary="Store a file and extract its text",
)
async def extract_file(
    file: Optional[UploadFile] = File(default=None),
    owner_id: str = Depends(get_uploading_user_id),
) -> ExtractResponse:
    upload = await _read_upload(file)
    logger.info("Extraction from %s: %s (%d bytes)", owner_id, upload.name, upload.size)

    result = await extraction_service.extract(upload)
    return ExtractResponse(
        url=result.remote_url,
        filename=result.filename,
        content_type=result.content_type,
        text=result.text,
    )


@router.get(
    "/{pathname:path}",
    responses={
        200: {"description": "The stored file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a stored file",
)
async def serve_file(pathname: str) -> FileResponse:
    path = file_service.resolve(pathname)
    return FileResponse(
        path=str(path),
        media_type=guess_content_type(path.name),
        headers={"Cache-Control": "public, max-age=86400"},
    )
