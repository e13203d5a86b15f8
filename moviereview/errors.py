"""
Domain error taxonomy.

Services raise these; the handlers registered in main.py turn them into a
structured JSON body ``{"error": kind, "message": msg}`` with the matching
HTTP status, so nothing reaches the client unclassified.
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class AppError(Exception):
    kind = "ServerError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(AppError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(AppError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class DuplicateReview(AppError):
    kind = "DuplicateReview"
    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyInList(AppError):
    kind = "AlreadyInList"
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(AppError):
    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


# ────────────────────────────────
# Exception handlers
# ────────────────────────────────
def _clean_message(msg: str) -> str:
    # pydantic prefixes messages raised from custom validators
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(f"[API] {request.method} {request.url.path} → {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message},
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": _clean_message(err.get("msg", ""))}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Validation error"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": ValidationError.kind, "message": message, "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": AppError.kind, "message": "Internal server error"},
    )
