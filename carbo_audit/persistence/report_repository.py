"""
Report Repository — storage for audit reports and their issues.

Two collections:
  audit_reports  one aggregate document per evaluation, keyed by a generated id
  audit_issues   one document per issue, ``report_id`` → audit_reports._id

Reports are append-only: re-running an evaluation creates a new report.
In mock mode both collections live in memory with identical document shapes.
"""

from __future__ import annotations

import logging
import uuid
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from carbo_audit.config import Settings, get_settings
from carbo_audit.exceptions import PersistenceFailureError
from carbo_audit.persistence.mongo_client import ISSUES_COLLECTION, REPORTS_COLLECTION, MongoClient

logger = logging.getLogger(__name__)


class ReportRepository:
    """Save/load audit reports. Storage failures surface as PersistenceFailureError."""

    def __init__(self, settings: Optional[Settings] = None, mongo: Optional[MongoClient] = None):
        self.settings = settings or get_settings()
        self.mock_mode = self.settings.mock_mode
        self._mongo = mongo or MongoClient(self.settings)
        self._memory_reports: dict[str, dict[str, Any]] = {}
        self._memory_issues: list[dict[str, Any]] = []

    def _collection(self, name: str) -> Any:
        return self._mongo.collection(name)

    def close(self) -> None:
        self._mongo.close()

    # ── Writes ───────────────────────────────────────────

    def insert_report(self, record: dict[str, Any]) -> str:
        """Insert an aggregate record and return its generated id."""
        report_id = uuid.uuid4().hex
        document = {
            "_id": report_id,
            **record,
            "created_at": datetime.now(timezone.utc),
        }
        if self.mock_mode:
            self._memory_reports[report_id] = document
            logger.info(f"[PERSIST] Saved report {report_id} (memory)")
            return report_id

        try:
            self._collection(REPORTS_COLLECTION).insert_one(document)
        except PyMongoError as exc:
            raise PersistenceFailureError("insert_report", str(exc)) from exc
        logger.info(f"[PERSIST] Saved report {report_id}")
        return report_id

    def insert_issues(self, report_id: str, rows: list[dict[str, Any]]) -> int:
        """Insert issue rows for a report and return how many were written."""
        if not rows:
            return 0
        documents = [{"report_id": report_id, **row} for row in rows]
        if self.mock_mode:
            self._memory_issues.extend(documents)
            return len(documents)

        try:
            self._collection(ISSUES_COLLECTION).insert_many(documents)
        except PyMongoError as exc:
            raise PersistenceFailureError("insert_issues", str(exc)) from exc
        logger.info(f"[PERSIST] Saved {len(documents)} issues for report {report_id}")
        return len(documents)

    # ── Reads ────────────────────────────────────────────

    def list_reports(self, user_id: str) -> list[dict[str, Any]]:
        """Return the owner's aggregate records, newest first."""
        if self.mock_mode:
            owned = [r for r in self._memory_reports.values() if r["user_id"] == user_id]
            owned.sort(key=lambda r: r["created_at"], reverse=True)
            return [deepcopy(r) for r in owned]

        try:
            cursor = self._collection(REPORTS_COLLECTION).find({"user_id": user_id}).sort("created_at", DESCENDING)
            return list(cursor)
        except PyMongoError as exc:
            raise PersistenceFailureError("list_reports", str(exc)) from exc

    def get_report(self, user_id: str, report_id: str) -> Optional[dict[str, Any]]:
        """Return one aggregate record with its issues, or None if absent or not owned."""
        if self.mock_mode:
            record = self._memory_reports.get(report_id)
            if record is None or record["user_id"] != user_id:
                return None
            result = deepcopy(record)
            result["issues"] = [deepcopy(i) for i in self._memory_issues if i["report_id"] == report_id]
            return result

        try:
            record = self._collection(REPORTS_COLLECTION).find_one({"_id": report_id, "user_id": user_id})
            if record is None:
                return None
            record["issues"] = list(self._collection(ISSUES_COLLECTION).find({"report_id": report_id}))
        except PyMongoError as exc:
            raise PersistenceFailureError("get_report", str(exc)) from exc
        return record

    def count_issues(self, report_id: str) -> int:
        if self.mock_mode:
            return sum(1 for i in self._memory_issues if i["report_id"] == report_id)
        try:
            return self._collection(ISSUES_COLLECTION).count_documents({"report_id": report_id})
        except PyMongoError as exc:
            raise PersistenceFailureError("count_issues", str(exc)) from exc
