"""
NoteCraft Backend: In-Process Collaborators
=============================================

DocumentExtractor / DocumentUploader implementations used when the ingestion
pipeline runs inside the server. Both are bound to the caller's identity:
without an owner they fail with FailureKind.UNAUTHORIZED, exactly as the HTTP
endpoints answer 401 to an anonymous caller.
"""

import logging
from typing import Optional

from notecraft.exceptions import ExtractionError, NoteCraftError, UploadError
from notecraft.models.ingestion import ExtractionResult, InputFile, UploadResult
from notecraft.services.extraction_base import DocumentExtractor, DocumentUploader
from notecraft.services.extraction_service import ExtractionService, extraction_service
from notecraft.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)


class LocalExtractor(DocumentExtractor):

    def __init__(self, owner_id: Optional[str], service: Optional[ExtractionService] = None):
        self.owner_id = owner_id
        self.service = service or extraction_service

    async def extract(self, file: InputFile) -> ExtractionResult:
        if not self.owner_id:
            raise ExtractionError.unauthorized(context={"file": file.name})
        return await self.service.extract(file)


class LocalUploader(DocumentUploader):

    def __init__(self, owner_id: Optional[str], files: Optional[FileService] = None):
        self.owner_id = owner_id
        self.files = files or file_service

    async def upload(self, file: InputFile) -> UploadResult:
        if not self.owner_id:
            raise UploadError.unauthorized(context={"file": file.name})
        try:
            _, result = await self.files.validate_and_store(
                filename=file.name,
                content=file.content,
                declared_type=file.declared_type,
            )
        except UploadError:
            raise
        except NoteCraftError as e:
            raise UploadError(message=e.message, context=e.context) from e
        return result
