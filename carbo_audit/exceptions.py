"""
Typed exceptions for the audit pipeline.

Every error carries a machine-readable ``code``, the HTTP status the API
answers with, and a ``public_message`` that is safe to return to callers.
Upstream bodies and raw model replies stay on the exception for logging.

    AuditError (base)
    |
    +-- InputMissingError          INPUT_MISSING          400
    +-- ConfigurationError         CONFIGURATION_ERROR    500
    +-- UpstreamUnavailableError   UPSTREAM_UNAVAILABLE   502
    +-- EmptyResponseError         EMPTY_RESPONSE         502
    +-- MalformedEvaluationError   MALFORMED_EVALUATION   502
    +-- PersistenceFailureError    PERSISTENCE_FAILURE    (never reaches the API)
"""

from __future__ import annotations


class AuditError(Exception):
    """Base class for all audit pipeline errors."""

    code: str = "AUDIT_ERROR"
    http_status: int = 500
    public_message: str = "Failed to process audit"

    def __init__(self, message: str | None = None):
        self.message = message or self.public_message
        super().__init__(self.message)


class InputMissingError(AuditError):
    """The primary (PDD) document was not supplied."""

    code = "INPUT_MISSING"
    http_status = 400
    public_message = "PDD file is required"

    def __init__(self, field: str = "pdd", message: str | None = None):
        self.field = field
        super().__init__(message)


class ConfigurationError(AuditError):
    code = "CONFIGURATION_ERROR"
    http_status = 500
    public_message = "Audit service is not configured"


class UpstreamUnavailableError(AuditError):
    """The reasoning service returned a non-success status or could not be reached."""

    code = "UPSTREAM_UNAVAILABLE"
    http_status = 502
    public_message = "AI evaluation service is unavailable"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyResponseError(AuditError):
    code = "EMPTY_RESPONSE"
    http_status = 502
    public_message = "Empty response from AI evaluation service"


class MalformedEvaluationError(AuditError):
    """The reasoning service reply could not be decoded as a report."""

    code = "MALFORMED_EVALUATION"
    http_status = 502
    public_message = "Failed to parse AI evaluation response"

    def __init__(self, message: str | None = None, raw_reply: str = ""):
        self.raw_reply = raw_reply
        super().__init__(message)


class PersistenceFailureError(AuditError):
    code = "PERSISTENCE_FAILURE"
    public_message = "Failed to store audit report"

    def __init__(self, operation: str, message: str | None = None):
        self.operation = operation
        super().__init__(message)
