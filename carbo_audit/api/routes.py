"""
API routes — thin HTTP layer that delegates to the audit pipeline.

Routes:
  GET     /health                         → API health check
  OPTIONS /api/audit/process              → CORS preflight, empty body
  POST    /api/audit/process              → multipart {pdd, calculation?} → report
  GET     /api/audit/reports              → caller's stored reports
  GET     /api/audit/reports/{report_id}  → one stored report with issues
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Header, UploadFile
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from carbo_audit.exceptions import AuditError, PersistenceFailureError
from carbo_audit.models.schemas import UploadedDocument
from carbo_audit.orchestration.audit_pipeline import AuditPipeline, get_pipeline

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-supabase-client-platform",
    "x-supabase-client-platform-version",
    "x-supabase-client-runtime",
    "x-supabase-client-runtime-version",
]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}

GENERIC_FAILURE = "Failed to process audit"
LOAD_FAILURE = "Failed to load reports"

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
audit_router = APIRouter()


def failure_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error}, headers=CORS_HEADERS)


def _success(content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(content={"success": True, **content}, headers=CORS_HEADERS)


async def _read_upload(upload: Optional[UploadFile], default_name: str) -> Optional[UploadedDocument]:
    if upload is None:
        return None
    data = await upload.read()
    return UploadedDocument(
        data=data,
        declared_name=upload.filename or default_name,
        declared_size=upload.size if upload.size is not None else len(data),
    )


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Process audit ────────────────────────────────────────

@audit_router.options("/process")
async def process_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@audit_router.post("/process")
async def process_audit(
    pdd: Optional[UploadFile] = File(None),
    calculation: Optional[UploadFile] = File(None),
    authorization: Optional[str] = Header(None),
    pipeline: AuditPipeline = Depends(get_pipeline),
):
    """
    Evaluate an uploaded PDD (and optional calculation spreadsheet) against
    the rule corpus. Either the complete report or a single error message.
    """
    try:
        pdd_doc = await _read_upload(pdd, "pdd")
        calculation_doc = await _read_upload(calculation, "calculation")
        outcome = await run_in_threadpool(pipeline.run, pdd_doc, calculation_doc, authorization)
    except AuditError as exc:
        logger.error(f"[API] Audit failed ({exc.code}): {exc.message}")
        return failure_response(exc.http_status, exc.public_message)
    except Exception:
        logger.exception("[API] Unexpected error processing audit")
        return failure_response(500, GENERIC_FAILURE)

    return _success(outcome.model_dump(by_alias=True, mode="json"))


# ── Stored reports ───────────────────────────────────────

@audit_router.get("/reports")
async def list_reports(
    authorization: Optional[str] = Header(None),
    pipeline: AuditPipeline = Depends(get_pipeline),
):
    user_id = await run_in_threadpool(pipeline.identity_service.resolve, authorization)
    if not user_id:
        return failure_response(401, "Authentication required")
    try:
        reports = await run_in_threadpool(pipeline.report_service.list_reports, user_id)
    except PersistenceFailureError as exc:
        logger.error(f"[API] Listing reports failed: {exc.message}")
        return failure_response(500, LOAD_FAILURE)
    return _success({"reports": reports})


@audit_router.get("/reports/{report_id}")
async def get_report(
    report_id: str,
    authorization: Optional[str] = Header(None),
    pipeline: AuditPipeline = Depends(get_pipeline),
):
    user_id = await run_in_threadpool(pipeline.identity_service.resolve, authorization)
    if not user_id:
        return failure_response(401, "Authentication required")
    try:
        report = await run_in_threadpool(pipeline.report_service.get_report, user_id, report_id)
    except PersistenceFailureError as exc:
        logger.error(f"[API] Loading report {report_id} failed: {exc.message}")
        return failure_response(500, LOAD_FAILURE)
    if report is None:
        return failure_response(404, "Report not found")
    return _success({"report": report})
