"""
NoteCraft Backend: API Route Tests
====================================

What:  The HTTP surface end to end through the ASGI app.
How:   httpx AsyncClient over ASGITransport; SQLite test database; the
       extraction provider is always mocked.

What we test:
    ✅ Render, ingest, upload, extract, serve
    ✅ Notes CRUD, owner scoping and error bodies
    ✅ Health status levels
    ✅ X-Request-ID correlation
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notecraft.config import settings
from notecraft.exceptions import SIGN_IN_MESSAGE, CircuitBreakerOpenError, ExtractionError
from notecraft.models.ingestion import ExtractionResult
from notecraft.services.gemini_service import CircuitBreaker

OWNER = {"X-User-ID": "user-1"}
OTHER_OWNER = {"X-User-ID": "user-2"}


def failing_extraction_service():
    service = MagicMock()
    service.extract = AsyncMock(side_effect=ExtractionError("Model down"))
    return service


class TestRender:

    @pytest.mark.asyncio
    async def test_render(self, test_client):
        response = await test_client.post("/api/render", json={"content": "# Hi\n\n<b>x</b>"})

        assert response.status_code == 200
        assert response.json()["html"] == "<h1>Hi</h1>\n<p>&lt;b&gt;x&lt;/b&gt;</p>"

    @pytest.mark.asyncio
    async def test_render_empty_body(self, test_client):
        response = await test_client.post("/api/render", json={})

        assert response.json()["html"] == ""


class TestIngest:

    @pytest.mark.asyncio
    async def test_anonymous_text_file(self, test_client):
        response = await test_client.post(
            "/api/ingest",
            files={"files": ("todo.md", b"- buy milk\n", "text/markdown")},
            data={"content": "Draft"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["composed_text"] == "- buy milk"
        assert body["content"] == "Draft\n\n- buy milk"
        assert body["title"] == "todo"
        assert body["selected_files"] == ["todo.md"]
        assert body["errors"] == []

    @pytest.mark.asyncio
    async def test_anonymous_binary_file_needs_sign_in(self, test_client):
        response = await test_client.post(
            "/api/ingest",
            files=[
                ("files", ("notes.txt", b"typed", "text/plain")),
                ("files", ("scan.pdf", b"%PDF-1.4", "application/pdf")),
            ],
        )

        body = response.json()
        assert response.status_code == 200
        assert body["merged"] == "typed"
        assert body["title"] == "Merged notes (2 files)"
        assert body["errors"] == [{"file_name": "scan.pdf", "message": SIGN_IN_MESSAGE}]

    @pytest.mark.asyncio
    async def test_failed_extraction_falls_back_to_link(self, test_client):
        with patch(
            "notecraft.services.collaborators.extraction_service",
            failing_extraction_service(),
        ):
            response = await test_client.post(
                "/api/ingest",
                files={"files": ("whiteboard.png", b"\x89PNG\r\n", "image/png")},
                data={"title": "Retro"},
                headers=OWNER,
            )

        body = response.json()
        assert body["errors"] == []
        assert body["composed_text"] == ""
        assert body["composed_links"].startswith("[whiteboard.png](http://testserver/api/files/")
        assert body["title"] == "Retro"
        preview = body["previews"][0]
        assert preview["content_type"] == "image/png"

        served = await test_client.get(preview["url"].replace("http://testserver", ""))
        assert served.status_code == 200
        assert served.content == b"\x89PNG\r\n"

    @pytest.mark.asyncio
    async def test_oversize_file_is_reported_and_skipped(self, test_client):
        with patch.object(settings, "max_upload_size", 8):
            response = await test_client.post(
                "/api/ingest",
                files=[
                    ("files", ("big.txt", b"x" * 64, "text/plain")),
                    ("files", ("small.txt", b"abc", "text/plain")),
                ],
            )

        body = response.json()
        assert response.status_code == 200
        assert body["composed_text"] == "abc"
        assert [p["name"] for p in body["previews"]] == ["small.txt"]
        assert len(body["errors"]) == 1
        assert body["errors"][0]["file_name"] == "big.txt"
        assert body["errors"][0]["message"].startswith("File size should be less than")

    @pytest.mark.asyncio
    async def test_no_files(self, test_client):
        response = await test_client.post("/api/ingest", data={"content": "Draft"})

        body = response.json()
        assert response.status_code == 200
        assert body["content"] == "Draft"
        assert body["merged"] == ""
        assert body["title"] == ""


class TestUpload:

    @pytest.mark.asyncio
    async def test_anonymous_upload_rejected(self, test_client):
        response = await test_client.post(
            "/api/files/upload",
            files={"file": ("a.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 401
        assert response.json()["message"] == SIGN_IN_MESSAGE

    @pytest.mark.asyncio
    async def test_upload(self, test_client):
        response = await test_client.post(
            "/api/files/upload",
            files={"file": ("Slides.pdf", b"%PDF-1.4", "application/pdf")},
            headers=OWNER,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["contentType"] == "application/pdf"
        assert body["pathname"].endswith(".pdf")
        assert body["url"] == f"http://testserver/api/files/{body['pathname']}"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, test_client):
        response = await test_client.post(
            "/api/files/upload",
            files={"file": ("tool.exe", b"MZ", "application/x-msdownload")},
            headers=OWNER,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client):
        response = await test_client.post(
            "/api/files/upload", data={"note": "x"}, headers=OWNER
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded"

    @pytest.mark.asyncio
    async def test_serve_rejects_traversal(self, test_client):
        response = await test_client.get("/api/files/..%2F..%2Fetc%2Fpasswd")

        assert response.status_code == 404


class TestExtract:

    @pytest.mark.asyncio
    async def test_extract(self, test_client):
        service = MagicMock()
        service.extract = AsyncMock(return_value=ExtractionResult(
            filename="scan.pdf",
            text="Hello",
            remote_url="http://testserver/api/files/x.pdf",
            content_type="application/pdf",
        ))

        with patch("notecraft.routes.files.extraction_service", service):
            response = await test_client.post(
                "/api/files/extract",
                files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
                headers=OWNER,
            )

        assert response.status_code == 200
        assert response.json() == {
            "url": "http://testserver/api/files/x.pdf",
            "filename": "scan.pdf",
            "contentType": "application/pdf",
            "text": "Hello",
        }
        uploaded = service.extract.call_args.args[0]
        assert uploaded.name == "scan.pdf"
        assert uploaded.content == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_extraction_failure_is_502(self, test_client):
        with patch("notecraft.routes.files.extraction_service", failing_extraction_service()):
            response = await test_client.post(
                "/api/files/extract",
                files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
                headers=OWNER,
            )

        assert response.status_code == 502
        assert response.json()["message"] == "Model down"

    @pytest.mark.asyncio
    async def test_open_circuit_is_503(self, test_client):
        service = MagicMock()
        service.extract = AsyncMock(side_effect=CircuitBreakerOpenError(recovery_time=30))

        with patch("notecraft.routes.files.extraction_service", service):
            response = await test_client.post(
                "/api/files/extract",
                files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
                headers=OWNER,
            )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"


class TestNotes:

    @pytest.mark.asyncio
    async def test_requires_identity(self, db_tables, test_client):
        response = await test_client.get("/api/notes")

        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_create_requires_title_and_content(self, db_tables, test_client):
        response = await test_client.post("/api/notes", json={"title": "Only title"}, headers=OWNER)

        assert response.status_code == 400
        assert response.json()["message"] == "Both title and content are required."

    @pytest.mark.asyncio
    async def test_crud_flow(self, db_tables, test_client):
        created = await test_client.post(
            "/api/notes",
            json={"title": "Trip", "content": "**Pack** bags", "tags": ["travel"]},
            headers=OWNER,
        )
        assert created.status_code == 200
        note_id = created.json()["id"]

        await test_client.post(
            "/api/notes", json={"title": "Work", "content": "standup"}, headers=OWNER
        )

        listed = await test_client.get("/api/notes", headers=OWNER)
        assert listed.json()["total_count"] == 2
        assert listed.headers["X-Total-Count"] == "2"

        searched = await test_client.get("/api/notes", params={"q": "TRAVEL"}, headers=OWNER)
        assert [n["title"] for n in searched.json()["notes"]] == ["Trip"]

        detail = await test_client.get(f"/api/notes/{note_id}", headers=OWNER)
        assert detail.status_code == 200
        assert detail.json()["html"] == "<p><strong>Pack</strong> bags</p>"

        foreign = await test_client.get(f"/api/notes/{note_id}", headers=OTHER_OWNER)
        assert foreign.status_code == 404

        deleted = await test_client.delete("/api/notes", params={"id": note_id}, headers=OWNER)
        assert deleted.status_code == 200
        assert deleted.json() == {"ok": True}

        again = await test_client.delete("/api/notes", params={"id": note_id}, headers=OWNER)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_other_owner_sees_nothing(self, db_tables, test_client):
        await test_client.post(
            "/api/notes", json={"title": "Mine", "content": "secret"}, headers=OWNER
        )

        response = await test_client.get("/api/notes", headers=OTHER_OWNER)

        assert response.json() == {"notes": [], "total_count": 0}

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, db_tables, test_client):
        response = await test_client.delete("/api/notes", headers=OWNER)

        assert response.status_code == 400
        assert response.json()["message"] == "Parameter id is required."


class TestHealth:

    @staticmethod
    def provider(state=CircuitBreaker.CLOSED, reachable=True):
        service = MagicMock()
        service.circuit_breaker.state = state
        service.health_check = AsyncMock(return_value=reachable)
        return service

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        with patch("notecraft.routes.health.gemini_service", self.provider()):
            response = await test_client.get("/health")

        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["extraction"] == "available"

    @pytest.mark.asyncio
    async def test_degraded_when_extraction_unreachable(self, test_client):
        with patch("notecraft.routes.health.gemini_service", self.provider(reachable=False)):
            response = await test_client.get("/health")

        assert response.json()["status"] == "degraded"
        assert response.json()["extraction"] == "unavailable"

    @pytest.mark.asyncio
    async def test_degraded_when_circuit_open(self, test_client):
        provider = self.provider(state=CircuitBreaker.OPEN)
        with patch("notecraft.routes.health.gemini_service", provider):
            response = await test_client.get("/health")

        assert response.json()["extraction"] == "circuit_open"
        provider.health_check.assert_not_awaited()


class TestRequestId:

    @pytest.mark.asyncio
    async def test_client_request_id_is_echoed(self, test_client):
        response = await test_client.post(
            "/api/notes", json={}, headers={**OWNER, "X-Request-ID": "req-42"}
        )

        assert response.headers["X-Request-ID"] == "req-42"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.post("/api/render", json={"content": "x"})

        assert response.headers["X-Request-ID"]
