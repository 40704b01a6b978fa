"""Persistence — MongoClient, ReportRepository."""

from carbo_audit.persistence.mongo_client import MongoClient
from carbo_audit.persistence.report_repository import ReportRepository

__all__ = ["MongoClient", "ReportRepository"]
