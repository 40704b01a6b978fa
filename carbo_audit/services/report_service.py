"""
Report Service — maps validated reports to storage rows and persists them.

Persistence is best-effort: a storage failure is logged and the caller
still receives the computed report, just without a report id.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from carbo_audit.exceptions import PersistenceFailureError
from carbo_audit.models.enums import ReportStatus
from carbo_audit.models.schemas import AuditReport
from carbo_audit.persistence.report_repository import ReportRepository

logger = logging.getLogger(__name__)


def to_report_record(report: AuditReport, user_id: str, corpus_version: str) -> dict[str, Any]:
    """Aggregate row: owner, project and the derived counts."""
    summary = report.summary
    return {
        "user_id": user_id,
        "project_name": report.project_name,
        "major_issues_count": summary.major,
        "minor_issues_count": summary.minor,
        "compliant_count": summary.compliant,
        "status": ReportStatus.COMPLETED.value,
        "rule_corpus_version": corpus_version,
    }


def to_issue_rows(report: AuditReport) -> list[dict[str, Any]]:
    return [
        {
            "severity": issue.severity.value,
            "category": issue.category.value,
            "title": issue.title,
            "section": issue.section,
            "description": issue.description,
            "suggested_fix": issue.suggested_fix,
        }
        for issue in report.issues
    ]


class ReportService:
    """Persists reports for authenticated callers and serves them back."""

    def __init__(self, repository: ReportRepository):
        self.repository = repository

    def persist(self, report: AuditReport, user_id: Optional[str], corpus_version: str) -> Optional[str]:
        """
        Write the aggregate then its issues. Returns the report id, or None
        for anonymous callers or when the aggregate could not be written.
        """
        if not user_id:
            logger.info("[PERSIST] Anonymous caller — skipping persistence")
            return None

        try:
            report_id = self.repository.insert_report(to_report_record(report, user_id, corpus_version))
        except PersistenceFailureError as exc:
            logger.error(f"[PERSIST] Error saving report: {exc}")
            return None

        try:
            self.repository.insert_issues(report_id, to_issue_rows(report))
        except PersistenceFailureError as exc:
            logger.error(f"[PERSIST] Error saving issues for report {report_id}: {exc}")

        return report_id

    def list_reports(self, user_id: str) -> list[dict[str, Any]]:
        return [_serialize_record(r) for r in self.repository.list_reports(user_id)]

    def get_report(self, user_id: str, report_id: str) -> Optional[dict[str, Any]]:
        record = self.repository.get_report(user_id, report_id)
        if record is None:
            return None
        result = _serialize_record(record)
        result["issues"] = [_serialize_issue(i) for i in record.get("issues", [])]
        return result


# ── Wire mapping ─────────────────────────────────────────


def _iso(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_record(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(record["_id"]),
        "projectName": record.get("project_name"),
        "summary": {
            "major": record.get("major_issues_count", 0),
            "minor": record.get("minor_issues_count", 0),
            "compliant": record.get("compliant_count", 0),
        },
        "status": record.get("status"),
        "ruleCorpusVersion": record.get("rule_corpus_version"),
        "createdAt": _iso(record.get("created_at")),
    }


def _serialize_issue(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "severity": row.get("severity"),
        "category": row.get("category") or "general",
        "title": row.get("title"),
        "section": row.get("section"),
        "description": row.get("description"),
        "suggestedFix": row.get("suggested_fix"),
    }
