"""
Tests: HTTP surface via FastAPI's TestClient, pipeline dependency overridden.

Run with:
    pytest carbo_audit/tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from carbo_audit.api import create_app
from carbo_audit.exceptions import UpstreamUnavailableError
from carbo_audit.orchestration.audit_pipeline import AuditPipeline, get_pipeline
from carbo_audit.persistence.report_repository import ReportRepository
from carbo_audit.services.report_service import ReportService
from conftest import SAMPLE_PDF, SAMPLE_XLSX, FakeReasoningClient

AUTH = {"Authorization": "Bearer token-a"}


@pytest.fixture
def repository():
    return ReportRepository()


@pytest.fixture
def make_client(repository):
    def build(reasoning_client):
        pipeline = AuditPipeline(reasoning_client=reasoning_client, report_service=ReportService(repository))
        app = create_app()
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return TestClient(app)

    return build


def _files(with_pdd=True, with_calculation=False):
    files = {}
    if with_pdd:
        files["pdd"] = ("pdd.pdf", SAMPLE_PDF, "application/pdf")
    if with_calculation:
        files["calculation"] = (
            "calc.xlsx",
            SAMPLE_XLSX,
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    return files


class TestHealth:
    def test_health(self, make_client):
        response = make_client(FakeReasoningClient()).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestProcess:
    def test_missing_pdd(self, make_client):
        fake = FakeReasoningClient()
        response = make_client(fake).post("/api/audit/process", files=_files(False, True))
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "PDD file is required"}
        assert fake.requests == []

    def test_anonymous_success(self, make_client):
        response = make_client(FakeReasoningClient()).post("/api/audit/process", files=_files())
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["reportId"] is None
        assert body["report"]["projectName"] == "Luzon AWD Rice Project"
        assert body["report"]["summary"] == {"major": 2, "minor": 1, "compliant": 3}

    def test_authenticated_success_persists(self, make_client, repository):
        response = make_client(FakeReasoningClient()).post(
            "/api/audit/process", files=_files(with_calculation=True), headers=AUTH
        )
        body = response.json()
        assert response.status_code == 200
        assert body["reportId"]
        assert repository.count_issues(body["reportId"]) == 3
        assert [g["name"] for g in body["report"]["categories"]] == [
            "Calculation Accuracy", "Parameter Compliance", "Monitoring Plan",
        ]

    def test_upstream_failure(self, make_client, repository):
        fake = FakeReasoningClient(error=UpstreamUnavailableError("gateway 503", status_code=503))
        response = make_client(fake).post("/api/audit/process", files=_files(), headers=AUTH)
        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "AI evaluation service is unavailable"}

        reports = make_client(FakeReasoningClient()).get("/api/audit/reports", headers=AUTH)
        assert reports.json()["reports"] == []

    def test_malformed_reply(self, make_client):
        fake = FakeReasoningClient(reply="Sorry, I cannot help with that.")
        response = make_client(fake).post("/api/audit/process", files=_files())
        assert response.status_code == 502
        body = response.json()
        assert body == {"success": False, "error": "Failed to parse AI evaluation response"}
        assert "Sorry" not in response.text

    def test_unexpected_error_is_generic(self, make_client):
        fake = FakeReasoningClient(error=RuntimeError("secret internals"))
        response = make_client(fake).post("/api/audit/process", files=_files())
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process audit"}

    def test_preflight(self, make_client):
        response = make_client(FakeReasoningClient()).options("/api/audit/process")
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "authorization" in response.headers["access-control-allow-headers"]

    def test_empty_bearer_not_persisted(self, make_client, repository):
        client = make_client(FakeReasoningClient())
        response = client.post("/api/audit/process", files=_files(), headers={"Authorization": "Bearer "})
        assert response.status_code == 200
        assert response.json()["reportId"] is None
        assert client.get("/api/audit/reports", headers={"Authorization": "Bearer "}).status_code == 401

    def test_browser_preflight(self, make_client):
        response = make_client(FakeReasoningClient()).options(
            "/api/audit/process",
            headers={
                "Origin": "https://app.example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type, x-client-info",
            },
        )
        assert response.status_code == 200
        assert response.content == b""
        assert "content-type" not in response.headers
        assert response.headers["access-control-allow-origin"] == "*"
        allowed = response.headers["access-control-allow-headers"].lower()
        assert "authorization" in allowed and "x-client-info" in allowed
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_browser_preflight_unknown_header_rejected(self, make_client):
        response = make_client(FakeReasoningClient()).options(
            "/api/audit/process",
            headers={
                "Origin": "https://app.example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "x-not-allowed",
            },
        )
        assert response.status_code == 400
        assert response.content == b""

    def test_cross_origin_post_carries_cors_header(self, make_client):
        response = make_client(FakeReasoningClient()).post(
            "/api/audit/process", files=_files(), headers={"Origin": "https://app.example.org"}
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_pdd_sent_as_plain_field(self, make_client):
        fake = FakeReasoningClient()
        response = make_client(fake).post("/api/audit/process", data={"pdd": "not a file"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "PDD file is required"}
        assert response.headers["access-control-allow-origin"] == "*"
        assert fake.requests == []

    def test_calculation_sent_as_plain_field(self, make_client):
        response = make_client(FakeReasoningClient()).post(
            "/api/audit/process",
            files={"pdd": ("pdd.pdf", SAMPLE_PDF, "application/pdf")},
            data={"calculation": "not a file"},
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request"}


class TestReports:
    def test_requires_authentication(self, make_client):
        client = make_client(FakeReasoningClient())
        assert client.get("/api/audit/reports").status_code == 401
        assert client.get("/api/audit/reports/abc").json() == {
            "success": False, "error": "Authentication required",
        }

    def test_list_and_get(self, make_client):
        client = make_client(FakeReasoningClient())
        report_id = client.post("/api/audit/process", files=_files(), headers=AUTH).json()["reportId"]

        listed = client.get("/api/audit/reports", headers=AUTH).json()["reports"]
        assert [r["id"] for r in listed] == [report_id]

        report = client.get(f"/api/audit/reports/{report_id}", headers=AUTH).json()["report"]
        assert report["projectName"] == "Luzon AWD Rice Project"
        assert len(report["issues"]) == 3

    def test_other_owner_gets_404(self, make_client):
        client = make_client(FakeReasoningClient())
        report_id = client.post("/api/audit/process", files=_files(), headers=AUTH).json()["reportId"]
        response = client.get(f"/api/audit/reports/{report_id}", headers={"Authorization": "Bearer token-b"})
        assert response.status_code == 404
        assert response.json()["error"] == "Report not found"
