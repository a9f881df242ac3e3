"""Integration tests for templates, style profiles, uploads, dashboard and company info."""

import csv
import io
from unittest.mock import patch

from fastapi.testclient import TestClient

from backend.app.db.inmemory import InMemoryStorage
from backend.app.files.extract import CSV_MIME, MAX_FILES_PER_UPLOAD
from backend.app.models.common import DocumentType
from backend.app.models.documents import Document


class TestTemplates:
    """Test /api/templates."""

    def test_template_lifecycle(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """Templates can be created, updated, listed and deleted."""
        created = client.post(
            "/api/templates",
            json={"name": "Brand", "header": "ACME", "brandColors": {"primary": "#123456"}},
            headers=free_headers,
        )
        assert created.status_code == 200
        template = created.json()
        assert template["brandColors"]["primary"] == "#123456"

        updated = client.put(
            f"/api/templates/{template['id']}", json={"name": None, "header": None, "footer": "F"}, headers=free_headers
        ).json()
        assert updated["name"] == "Brand"
        assert updated["header"] is None
        assert updated["footer"] == "F"

        assert len(client.get("/api/templates", headers=free_headers).json()) == 1
        assert client.delete(f"/api/templates/{template['id']}", headers=free_headers).status_code == 200

        missing = client.delete(f"/api/templates/{template['id']}", headers=free_headers)
        assert missing.status_code == 404
        assert missing.json() == {"error": "Template not found"}

    def test_name_required(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """A template without a name is a 400."""
        assert client.post("/api/templates", json={"header": "x"}, headers=free_headers).status_code == 400


class TestStyleProfiles:
    """Test /api/style-profiles."""

    def test_profile_lifecycle_and_preview(
        self, client: TestClient, free_headers: dict[str, str], storage: InMemoryStorage
    ) -> None:
        """Profiles can be managed and previewed; preview consumes usage."""
        created = client.post(
            "/api/style-profiles",
            json={"name": "Warm", "tone": "friendly", "voice": "we", "preferredPhrases": ["together"]},
            headers=free_headers,
        )
        assert created.status_code == 200
        profile = created.json()
        assert profile["preferredPhrases"] == ["together"]

        updated = client.put(
            f"/api/style-profiles/{profile['id']}", json={"tone": None, "audience": "parents"}, headers=free_headers
        ).json()
        assert updated["tone"] == "friendly"
        assert updated["audience"] == "parents"

        preview = client.post(
            f"/api/style-profiles/{profile['id']}/preview", json={"sampleText": "Hello there"}, headers=free_headers
        )
        assert preview.status_code == 200
        assert "Hello there" in preview.json()["preview"]
        assert storage.get_user_by_email("free@example.com").daily_usage_count == 1

    def test_preview_unknown_profile(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """Previewing a missing profile is 404."""
        response = client.post("/api/style-profiles/missing/preview", json={}, headers=free_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Style profile not found"}


def _csv_bytes(rows: list[list[str]]) -> bytes:
    out = io.StringIO()
    csv.writer(out, lineterminator="\n").writerows(rows)
    return out.getvalue().encode()


class TestUploads:
    """Test /api/uploads."""

    def test_upload_csv_extracts_text(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """CSV uploads are stored with extracted text and can be downloaded."""
        data = _csv_bytes([["sku", "qty"], ["A-1", "4"]])

        response = client.post(
            "/api/uploads", files=[("files", ("stock.csv", data, CSV_MIME))], headers=free_headers
        )

        assert response.status_code == 200
        [uploaded] = response.json()
        assert uploaded["filename"] == "stock.csv"
        assert uploaded["fileType"] == "csv"
        assert uploaded["sizeBytes"] == len(data)
        assert uploaded["extractedContent"] == "sku,qty\nA-1,4\n"

        download = client.get(f"/api/uploads/{uploaded['id']}/content", headers=free_headers)
        assert download.content == data
        assert download.headers["content-disposition"] == 'attachment; filename="stock.csv"'

        assert client.delete(f"/api/uploads/{uploaded['id']}", headers=free_headers).json() == {"success": True}
        assert client.get("/api/uploads", headers=free_headers).json() == []

    def test_image_upload_has_no_text(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """Images are stored without extraction."""
        response = client.post(
            "/api/uploads", files=[("files", ("logo.png", b"\x89PNG", "image/png"))], headers=free_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["fileType"] == "image"
        assert response.json()[0]["extractedContent"] is None

    def test_corrupt_document_is_stored_without_text(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """Extraction failures do not fail the upload."""
        docx_mime = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        response = client.post(
            "/api/uploads", files=[("files", ("broken.docx", b"nope", docx_mime))], headers=free_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["extractedContent"] is None

    def test_disallowed_type(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """Types outside the allow-list are rejected."""
        response = client.post(
            "/api/uploads", files=[("files", ("run.sh", b"echo", "application/x-sh"))], headers=free_headers
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid file type"}

    def test_too_many_files(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """At most ten files per request."""
        files = [("files", (f"f{i}.csv", b"a\n", CSV_MIME)) for i in range(MAX_FILES_PER_UPLOAD + 1)]

        assert client.post("/api/uploads", files=files, headers=free_headers).status_code == 400

    def test_oversized_file_stores_nothing(
        self, client: TestClient, free_headers: dict[str, str], storage: InMemoryStorage
    ) -> None:
        """A too-large file rejects the whole upload before anything is stored."""
        files = [("files", ("a.csv", b"a,b\n", CSV_MIME)), ("files", ("b.csv", b"x" * 50, CSV_MIME))]

        with patch("backend.app.api.routes.uploads.MAX_UPLOAD_BYTES", 10):
            response = client.post("/api/uploads", files=files, headers=free_headers)

        assert response.status_code == 413
        assert response.json() == {"error": "File too large: b.csv"}
        assert storage.list_uploaded_files() == []

    def test_no_files(self, client: TestClient, free_headers: dict[str, str]) -> None:
        """An empty upload is rejected."""
        response = client.post("/api/uploads", data={"other": "x"}, headers=free_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "No files uploaded"}


class TestDashboard:
    """Test dashboard and company endpoints."""

    def test_stats_and_activity(
        self, client: TestClient, free_headers: dict[str, str], storage: InMemoryStorage
    ) -> None:
        """Counts and recent documents are reported."""
        for i in range(7):
            storage.create_document(Document(title=f"Doc {i}", content="c", document_type=DocumentType.blog))

        stats = client.get("/api/dashboard/stats", headers=free_headers).json()
        activity = client.get("/api/dashboard/activity", headers=free_headers).json()

        assert stats == {"documents": 7, "uploads": 0, "templates": 0, "styleProfiles": 0}
        assert len(activity) == 5
        assert activity[0]["title"] == 'Document "Doc 6" created'

    def test_company_is_public(self, client: TestClient) -> None:
        """Company info needs no session."""
        response = client.get("/api/company")

        assert response.status_code == 200
        assert response.json()["name"] == "IWRITE"
        assert response.json()["legalName"] == "IWRITE"

