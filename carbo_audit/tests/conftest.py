"""Shared fixtures: isolated settings, a canned reasoning client, sample replies."""

import json

import pytest

from carbo_audit.config import get_settings
from carbo_audit.orchestration import audit_pipeline
from carbo_audit.services import prompt_builder, rule_corpus


SAMPLE_REPLY = {
    "projectName": "Luzon AWD Rice Project",
    "issues": [
        {
            "severity": "major",
            "category": "calculation",
            "title": "CH4 emission total mismatch",
            "section": "Section 5.2 - Emission Calculations",
            "description": 'PDD states "12,450 tCO2e" while the spreadsheet totals 11,890 tCO2e.',
            "suggestedFix": "Recalculate RECH4,s with consistent inputs.",
            "status": "FAIL",
        },
        {
            "severity": "major",
            "category": "parameters",
            "title": "Non-compliant GWP value",
            "section": "Section 5.1",
            "description": 'Document uses "GWP_CH4 = 25".',
            "suggestedFix": "Use GWP_CH4 = 28 (IPCC AR5).",
            "status": "FAIL",
        },
        {
            "severity": "minor",
            "category": "monitoring",
            "title": "Monitoring frequency not stated",
            "section": "General",
            "description": "NOT FOUND",
            "suggestedFix": "State weekly water-level measurements.",
            "status": "NOT FOUND",
        },
    ],
    "compliantRules": [
        {"ruleNumber": 1, "title": "Project Eligibility", "evidence": '"switch from continuous flooding to AWD"'},
        {"ruleNumber": 14, "title": "Project Boundary Definition", "evidence": '"the boundary covers 1,500 ha in Nueva Ecija"'},
        {"ruleNumber": 17, "title": "Additionality Demonstration", "evidence": '"AWD is not common practice in the region"'},
    ],
    "summary": "Two major calculation/parameter failures and one missing monitoring detail.",
}

SAMPLE_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Length 96 >>\nstream\n"
    b"BT /F1 12 Tf (Project Name: Luzon AWD Rice Project) Tj ET\n"
    b"BT [(Crediting ) -250 (period: 10 years)] TJ ET\n"
    b"endstream\nendobj\n%%EOF\n"
)

SAMPLE_XLSX = (
    b"PK\x03\x04\x14\x00\x06\x00xl/sharedStrings.xml\x00"
    b"<sst><si><t>Baseline emissions (tCO2e)</t></si><si><t>Area (ha)</t></si></sst>"
    b"\x00\x00<c><v>1500</v></c>\x00"
)


class FakeReasoningClient:
    """Stands in for ReasoningClient; returns a canned reply or raises."""

    def __init__(self, reply=None, error=None):
        self.reply = reply if reply is not None else json.dumps(SAMPLE_REPLY)
        self.error = error
        self.requests = []

    def evaluate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "test-key")
    monkeypatch.setenv("MOCK_MODE", "true")
    monkeypatch.delenv("RULE_CORPUS_PATH", raising=False)
    get_settings.cache_clear()
    rule_corpus.get_rule_corpus.cache_clear()
    audit_pipeline.get_pipeline.cache_clear()
    audit_pipeline.get_report_service.cache_clear()
    prompt_builder._read_prompt.cache_clear()
    yield
    get_settings.cache_clear()
    rule_corpus.get_rule_corpus.cache_clear()
    audit_pipeline.get_pipeline.cache_clear()
    audit_pipeline.get_report_service.cache_clear()


@pytest.fixture
def corpus():
    return rule_corpus.get_rule_corpus()


@pytest.fixture
def fake_client():
    return FakeReasoningClient()
