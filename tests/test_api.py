import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from pdf_fixtures import make_pdf, read_toc
from tocedit.api.main import app

PDF_TYPE = "application/pdf"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._client_cm = TestClient(app)
        self.client = self._client_cm.__enter__()

    def tearDown(self) -> None:
        self._client_cm.__exit__(None, None, None)

    def upload(self, data: bytes, filename: str = "report.pdf", **form):
        return self.client.post(
            "/api/v1/files",
            files={"file": (filename, data, PDF_TYPE)},
            data=form,
        )


class DocumentEndpointsTests(ApiTestCase):
    def test_upload_returns_outline_text(self) -> None:
        response = self.upload(make_pdf(pages=3, toc=[[1, "Intro", 2]]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["file_name"], "report.pdf")
        self.assertEqual(body["page_count"], 3)
        self.assertEqual(body["toc_text"], "2: Intro\n")

        outline = self.client.get(f"/api/v1/documents/{body['document_id']}/outline").json()
        self.assertEqual(outline["items"], [{"title": "Intro", "page": 1, "children": []}])

    def test_rejects_non_pdf_upload(self) -> None:
        response = self.client.post(
            "/api/v1/files",
            files={"file": ("notes.txt", b"1: Intro", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)

    def test_password_flow(self) -> None:
        response = self.upload(make_pdf(pages=2, user_password="secret"), "locked.pdf")
        self.assertEqual(response.status_code, 401)
        detail = response.json()["detail"]
        self.assertEqual(detail["code"], "password_required")
        document_id = detail["document_id"]

        wrong = self.client.post(f"/api/v1/documents/{document_id}/password", json={"password": "nope"})
        self.assertEqual(wrong.json(), {"authenticated": False, "page_count": 0, "toc_text": None})

        right = self.client.post(f"/api/v1/documents/{document_id}/password", json={"password": "secret"})
        self.assertEqual(right.json(), {"authenticated": True, "page_count": 2, "toc_text": "1: First page"})

    def test_upload_with_password_field(self) -> None:
        response = self.upload(make_pdf(pages=2, user_password="secret"), "locked.pdf", password="secret")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["page_count"], 2)

    def test_save_outline_returns_pdf(self) -> None:
        document_id = self.upload(make_pdf(pages=3)).json()["document_id"]
        response = self.client.put(
            f"/api/v1/documents/{document_id}/outline",
            json={"text": "1: Intro\n  3: Appendix"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], PDF_TYPE)
        self.assertIn("report_toc.pdf", response.headers["content-disposition"])
        self.assertEqual(read_toc(response.content), [[1, "Intro", 1], [2, "Appendix", 3]])

    def test_save_with_empty_outline_is_rejected(self) -> None:
        document_id = self.upload(make_pdf(pages=3)).json()["document_id"]
        response = self.client.put(f"/api/v1/documents/{document_id}/outline", json={"text": ":::"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["detail"],
            "Could not parse the Table of Contents. Please check the format.",
        )

    def test_pages(self) -> None:
        document_id = self.upload(make_pdf(pages=2)).json()["document_id"]
        self.assertEqual(
            self.client.get(f"/api/v1/documents/{document_id}/pages").json(),
            {"page_count": 2},
        )
        page = self.client.get(f"/api/v1/documents/{document_id}/pages/2", params={"request_id": 8})
        self.assertEqual(page.status_code, 200)
        self.assertEqual(page.headers["content-type"], "image/png")
        self.assertEqual(page.headers["x-request-id"], "8")
        missing = self.client.get(f"/api/v1/documents/{document_id}/pages/3")
        self.assertEqual(missing.status_code, 404)

    def test_unknown_and_closed_documents(self) -> None:
        self.assertEqual(self.client.get("/api/v1/documents/doc_missing/pages").status_code, 404)
        document_id = self.upload(make_pdf(pages=1)).json()["document_id"]
        self.assertEqual(self.client.delete(f"/api/v1/documents/{document_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/v1/documents/{document_id}/outline").status_code, 404)


class TocEndpointsTests(ApiTestCase):
    def test_parse_reports_ignored_lines(self) -> None:
        response = self.client.post("/api/v1/toc/parse", json={"text": ":::\n1: Valid\n"})
        self.assertEqual(
            response.json(),
            {"items": [{"title": "Valid", "page": 0, "children": []}], "ignored_lines": [1]},
        )

    def test_format(self) -> None:
        items = [{"title": "A", "page": 0, "children": [{"title": "B", "children": []}]}]
        response = self.client.post("/api/v1/toc/format", json={"items": items})
        self.assertEqual(response.json(), {"text": "1: A\n\tB\n"})


class LayoutSettingsEndpointsTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._tmp = tempfile.TemporaryDirectory()
        patcher = mock.patch(
            "tocedit.storage.settings_store.RUNTIME_SETTINGS_PATH",
            Path(self._tmp.name) / "runtime_settings.json",
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def test_pane_proportion_round_trip(self) -> None:
        self.assertEqual(self.client.get("/api/v1/settings/layout").json(), {"pane_proportion": 50.0})
        saved = self.client.post("/api/v1/settings/layout", json={"pane_proportion": 37.5})
        self.assertEqual(saved.json(), {"pane_proportion": 37.5})
        self.assertEqual(self.client.get("/api/v1/settings/layout").json(), {"pane_proportion": 37.5})

    def test_out_of_range_proportion_is_rejected(self) -> None:
        response = self.client.post("/api/v1/settings/layout", json={"pane_proportion": 100})
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
