"""
API error taxonomy.

Every business-rule rejection carries a stable machine-readable code next to
the human-readable message:

    {"detail": {"code": "DUAL_APPROVAL_REQUIRED", "message": "..."}}

Server-side failures additionally carry a correlation id that is written to
the error log, so support can find the matching stack trace.
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from zena.api.core.logging import logger


class ApiError(HTTPException):
    """HTTPException with a stable error code."""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        detail = {"code": self.code, "message": message}
        if extra:
            detail.update(extra)
        super().__init__(status_code=status_code or self.status_code, detail=detail)
        self.message = message


class ValidationFailed(ApiError):
    status_code = 422
    code = "VALIDATION_ERROR"


class Unauthenticated(ApiError):
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(ApiError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class TenantMismatch(ApiError):
    status_code = 403
    code = "TENANT_MISMATCH"

    def __init__(self, message: str = "Resource belongs to a different tenant"):
        super().__init__(message)


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStatusTransition(ApiError):
    status_code = 422
    code = "INVALID_STATUS_TRANSITION"


class DualApprovalRequired(ApiError):
    status_code = 403
    code = "DUAL_APPROVAL_REQUIRED"


class BlockedByPolicy(ApiError):
    status_code = 422
    code = "BLOCKED_BY_POLICY"


class PersistenceError(ApiError):
    status_code = 500
    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, correlation_id: str):
        super().__init__(message, extra={"correlation_id": correlation_id})
        self.correlation_id = correlation_id


def new_correlation_id() -> str:
    return uuid.uuid4().hex


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures under the VALIDATION_ERROR code."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "code": ValidationFailed.code,
                "message": "Request validation failed",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log with a correlation id and hide internals."""
    correlation_id = new_correlation_id()
    logger.exception(
        "Unhandled error on %s %s (correlation_id=%s)",
        request.method, request.url.path, correlation_id
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "correlation_id": correlation_id,
            }
        },
    )
