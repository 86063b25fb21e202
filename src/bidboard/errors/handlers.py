"""Render bidboard errors, and malformed request bodies, as ErrorResponse envelopes."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bidboard.errors.exceptions import (
    BidBoardError,
    CapacityError,
    ConfigurationError,
    ConflictError,
    PermissionDeniedError,
    PersistenceError,
)
from bidboard.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

# Refusals are expected outcomes of a move; broken boards and failed writes are not
_REFUSALS = (PermissionDeniedError, CapacityError, ConflictError)
_FAULTS = (ConfigurationError, PersistenceError)


def _envelope(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "trc_unknown0"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BidBoardError)
    async def bidboard_error_handler(request: Request, exc: BidBoardError):
        context = {"path": request.url.path, "method": request.method, "code": exc.code}
        if isinstance(exc, _REFUSALS):
            logger.info("request_refused: %s", exc.message, extra=context)
        elif isinstance(exc, _FAULTS):
            logger.error("request_failed: %s", exc.message, extra=context)
        return _envelope(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return _envelope(request, 400, "VALIDATION_ERROR", "Request body is invalid", {"errors": errors})
