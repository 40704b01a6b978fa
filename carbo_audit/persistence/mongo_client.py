"""
Mongo Client — connection to the audit database.

Connects lazily on first collection access and creates the indexes the
report queries rely on. In mock mode nothing is opened and the repository
keeps its documents in memory instead.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo import MongoClient as PyMongoClient

from carbo_audit.config import Settings, get_settings

logger = logging.getLogger(__name__)

REPORTS_COLLECTION = "audit_reports"
ISSUES_COLLECTION = "audit_issues"


def _ensure_indexes(database: Any) -> None:
    # list_reports: owner, newest first; get_report: issues by report
    database[REPORTS_COLLECTION].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database[ISSUES_COLLECTION].create_index("report_id")


class MongoClient:
    """Owns the pymongo client for one process."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[PyMongoClient] = None
        self._db: Any = None

    @property
    def connected(self) -> bool:
        return self._db is not None

    def connect(self) -> None:
        if self.settings.mock_mode:
            logger.info("[MOCK] Reports kept in memory, MongoDB not contacted")
            return
        if self.connected:
            return

        if self._client is None:
            self._client = PyMongoClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=int(self.settings.mongodb_timeout_seconds * 1000),
            )
        database = self._client[self.settings.mongodb_database]
        _ensure_indexes(database)
        # connected only once the indexes exist
        self._db = database
        logger.info(f"Connected to MongoDB: {self.settings.mongodb_database}")

    def collection(self, name: str) -> Any:
        if not self.connected:
            self.connect()
        return self._db[name]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")
