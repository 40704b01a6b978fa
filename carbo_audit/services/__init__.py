"""Services — extraction, budgeting, prompt building, reasoning client, parsing, reports, identity."""

from carbo_audit.services.identity_service import IdentityService
from carbo_audit.services.llm_service import ReasoningClient
from carbo_audit.services.report_service import ReportService

__all__ = ["IdentityService", "ReasoningClient", "ReportService"]
