"""
NoteCraft Backend: Remote Collaborators
=========================================

What:  DocumentExtractor / DocumentUploader that call a NoteCraft server over HTTP.
Why:   Lets a client (CLI, worker, another service) run the ingestion
       pipeline locally while storage and extraction stay on the server.
How:   httpx.AsyncClient posting multipart `file` to
       POST /api/files/extract and POST /api/files/upload.

Failure mapping:
    HTTP 401                     → kind=UNAUTHORIZED, SIGN_IN_MESSAGE
    other non-2xx                → kind=OTHER, server's `message`/`error` text
    transport error / bad JSON   → kind=OTHER, default message
"""

import logging
from typing import Dict, Optional, Type

import httpx

from notecraft.config import settings
from notecraft.exceptions import CollaboratorError, ExtractionError, UploadError
from notecraft.models.ingestion import ExtractionResult, InputFile, UploadResult
from notecraft.services.extraction_base import DocumentExtractor, DocumentUploader

logger = logging.getLogger(__name__)

EXTRACT_PATH = "/api/files/extract"
UPLOAD_PATH = "/api/files/upload"


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    return body.get("message") or body.get("error")


class _RemoteCollaborator:
    """Shared request/response handling for both remote collaborators."""

    error_class: Type[CollaboratorError] = CollaboratorError

    def __init__(
        self,
        base_url: str,
        owner_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.owner_id = owner_id
        self.timeout = timeout or settings.remote_timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"X-User-ID": self.owner_id} if self.owner_id else {}

    async def _post_file(self, path: str, file: InputFile) -> dict:
        files = {
            "file": (file.name, file.content, file.declared_type or "application/octet-stream"),
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(path, files=files, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Request to %s%s failed: %s", self.base_url, path, str(e))
            raise self.error_class(context={"file": file.name, "error": str(e)}) from e

        if response.status_code == 401:
            raise self.error_class.unauthorized(context={"file": file.name})
        if response.is_error:
            raise self.error_class(
                message=_error_message(response),
                context={"file": file.name, "status": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise self.error_class(context={"file": file.name, "error": "invalid JSON"}) from e


class RemoteExtractor(_RemoteCollaborator, DocumentExtractor):
    error_class = ExtractionError

    async def extract(self, file: InputFile) -> ExtractionResult:
        body = await self._post_file(EXTRACT_PATH, file)
        return ExtractionResult(
            filename=body.get("filename") or file.name,
            text=body.get("text") or "",
            remote_url=body.get("url"),
            content_type=body.get("contentType"),
        )


class RemoteUploader(_RemoteCollaborator, DocumentUploader):
    error_class = UploadError

    async def upload(self, file: InputFile) -> UploadResult:
        body = await self._post_file(UPLOAD_PATH, file)
        if not body.get("url"):
            raise UploadError(context={"file": file.name, "error": "missing url"})
        return UploadResult(
            remote_url=body["url"],
            pathname=body.get("pathname") or "",
            content_type=body.get("contentType"),
        )
