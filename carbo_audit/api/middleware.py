"""
HTTP plumbing shared by all routes: CORS preflight answers and the
request-validation error shape.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware

from carbo_audit.api.routes import failure_response
from carbo_audit.exceptions import InputMissingError

logger = logging.getLogger(__name__)

INVALID_REQUEST = "Invalid request"

_BODY_HEADERS = {"content-length", "content-type"}


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight answers carry headers only, no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        answered = super().preflight_response(request_headers)
        headers = {k: v for k, v in answered.headers.items() if k not in _BODY_HEADERS}
        return Response(status_code=answered.status_code, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.warning(f"[API] Rejected {request.method} {request.url.path}: {errors}")
    if any("pdd" in error.get("loc", ()) for error in errors):
        return failure_response(InputMissingError.http_status, InputMissingError.public_message)
    return failure_response(400, INVALID_REQUEST)
