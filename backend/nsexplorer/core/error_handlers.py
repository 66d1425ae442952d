"""Global exception handlers for FastAPI.

Every error leaves the API in the same envelope as a successful call, with
``success`` false. Store failures on browsing endpoints become 502s (404 for
an unknown namespace); query-time store rejections never get here because
the namespace service reports them inline. Internal details are only exposed
in DEBUG.
"""

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nsexplorer.config import settings
from nsexplorer.services.store_client import StoreError

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: list | None = None,
) -> JSONResponse:
    body: dict = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
        },
    }
    if details:
        body["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=body)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(
        status_code=exc.status_code,
        code=f"HTTP_{exc.status_code}",
        message=detail,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed submissions: unknown operators, non-finite values, bad top_k."""
    details = []
    for err in exc.errors():
        loc = " -> ".join(str(part) for part in err.get("loc", []))
        details.append({
            "field": loc,
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
        })
    return _error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="VALIDATION_ERROR",
        message="Request validation failed. Check the details for specific field errors.",
        details=details,
    )


async def value_error_handler(
    request: Request, exc: ValueError
) -> JSONResponse:
    """Builder rule violations (illegal operator, non-filterable field)."""
    return _error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="BAD_REQUEST",
        message=str(exc),
    )


async def store_exception_handler(
    request: Request, exc: StoreError
) -> JSONResponse:
    """Unknown namespace is a 404; any other store failure a 502."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NAMESPACE_NOT_FOUND",
            message=exc.message,
        )
    logger.warning(
        "Store error on %s %s: %s",
        request.method,
        request.url.path,
        exc.message,
    )
    message = "The vector store could not complete the request."
    if settings.DEBUG:
        message = f"Store error: {exc.message}"
    return _error_response(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="STORE_ERROR",
        message=message,
    )


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Anything else is a 500; the traceback goes to the log only."""
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )
    message = "An unexpected error occurred. Please try again later."
    if settings.DEBUG:
        message = f"Internal error: {exc}"
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_ERROR",
        message=message,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(StoreError, store_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
