from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.config import is_production
from backend.app.core.logging import get_logger
from backend.services.errors import (
    AlreadySignedInError,
    AuthenticationError,
    DuplicateError,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    PermissionDeniedError,
    StillReferencedError,
    ValidationError,
)

logger = get_logger(__name__)

STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (ValidationError, 400),
    (AlreadySignedInError, 400),
    (StillReferencedError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (DuplicateError, 409),
    (InsufficientStockError, 409),
]


def status_for(exc: LedgerError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "error": exc.code},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        fields.setdefault(".".join(loc) or "body", []).append(err.get("msg", "invalid"))
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "error": ValidationError.code, "fields": fields},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled error",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    detail = "Internal Server Error" if is_production() else f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail, "error": "INTERNAL_ERROR"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, internal_error_handler)
