"""
NoteCraft Backend: Extraction Service & Local Collaborator Tests
==================================================================

What we test:
    ✅ ExtractionService stores, extracts and returns the stored location
    ✅ Failed extraction removes the stored copy
    ✅ Rejected files surface as ExtractionError / UploadError
    ✅ Anonymous callers get FailureKind.UNAUTHORIZED
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from notecraft.exceptions import (
    SIGN_IN_MESSAGE,
    ExtractionError,
    FailureKind,
    UploadError,
)
from notecraft.models.ingestion import InputFile
from notecraft.services.collaborators import LocalExtractor, LocalUploader
from notecraft.services.extraction_service import ExtractionService
from notecraft.services.file_service import UNSUPPORTED_TYPE_MESSAGE, FileService


def stored_files(root):
    return [p for p in Path(root).rglob("*") if p.is_file()]


@pytest.fixture
def provider():
    mock = MagicMock()
    mock.extract_text = AsyncMock(return_value="Quarterly numbers")
    return mock


class TestExtractionService:

    @pytest.mark.asyncio
    async def test_extract_success(self, temp_storage, provider, sample_pdf_bytes):
        service = ExtractionService(files=FileService(temp_storage), extractor=provider)

        result = await service.extract(InputFile("report.pdf", sample_pdf_bytes, "application/pdf"))

        assert result.filename == "report.pdf"
        assert result.text == "Quarterly numbers"
        assert result.content_type == "application/pdf"
        assert "/api/files/" in result.remote_url
        stored = stored_files(temp_storage)
        assert len(stored) == 1
        provider.extract_text.assert_awaited_once_with(str(stored[0].resolve()), "application/pdf")

    @pytest.mark.asyncio
    async def test_failed_extraction_removes_stored_copy(self, temp_storage, provider, sample_pdf_bytes):
        provider.extract_text.side_effect = ExtractionError("Model unavailable")
        service = ExtractionService(files=FileService(temp_storage), extractor=provider)

        with pytest.raises(ExtractionError) as exc_info:
            await service.extract(InputFile("report.pdf", sample_pdf_bytes, "application/pdf"))

        assert exc_info.value.message == "Model unavailable"
        assert stored_files(temp_storage) == []

    @pytest.mark.asyncio
    async def test_rejected_file_becomes_extraction_error(self, temp_storage, provider):
        service = ExtractionService(files=FileService(temp_storage), extractor=provider)

        with pytest.raises(ExtractionError) as exc_info:
            await service.extract(InputFile("tool.exe", b"MZ"))

        assert exc_info.value.message == UNSUPPORTED_TYPE_MESSAGE
        provider.extract_text.assert_not_awaited()


class TestLocalExtractor:

    @pytest.mark.asyncio
    async def test_anonymous_caller_is_unauthorized(self, provider):
        extractor = LocalExtractor(owner_id=None, service=ExtractionService(extractor=provider))

        with pytest.raises(ExtractionError) as exc_info:
            await extractor.extract(InputFile("a.pdf", b"%PDF", "application/pdf"))

        assert exc_info.value.kind is FailureKind.UNAUTHORIZED
        assert exc_info.value.message == SIGN_IN_MESSAGE
        provider.extract_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_signed_in_caller_delegates(self):
        service = MagicMock()
        service.extract = AsyncMock(return_value="result")

        extractor = LocalExtractor(owner_id="user-1", service=service)

        assert await extractor.extract(InputFile("a.pdf", b"%PDF")) == "result"


class TestLocalUploader:

    @pytest.mark.asyncio
    async def test_anonymous_caller_is_unauthorized(self, temp_storage):
        uploader = LocalUploader(owner_id=None, files=FileService(temp_storage))

        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(InputFile("a.png", b"\x89PNG", "image/png"))

        assert exc_info.value.is_unauthorized
        assert stored_files(temp_storage) == []

    @pytest.mark.asyncio
    async def test_upload_stores_file(self, temp_storage):
        uploader = LocalUploader(owner_id="user-1", files=FileService(temp_storage))

        result = await uploader.upload(InputFile("whiteboard.png", b"\x89PNG", "image/png"))

        assert result.content_type == "image/png"
        assert result.pathname.endswith(".png")
        assert len(stored_files(temp_storage)) == 1

    @pytest.mark.asyncio
    async def test_rejected_file_becomes_upload_error(self, temp_storage):
        uploader = LocalUploader(owner_id="user-1", files=FileService(temp_storage))

        with pytest.raises(UploadError) as exc_info:
            await uploader.upload(InputFile("clip.mp4", b"\x00", "video/mp4"))

        assert exc_info.value.kind is FailureKind.OTHER
        assert exc_info.value.message == UNSUPPORTED_TYPE_MESSAGE
