"""Global error handler: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nexus_profile.errors import InternalError, ServiceError

logger = structlog.get_logger()

_HTTP_CODES = {
    400: "bad_request",
    401: "authentication_failed",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def _error_body(message: str, code: str, details: object = None) -> dict[str, object]:
    return {"message": message, "code": code, "details": details}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        """Render taxonomy errors with their own status and code."""
        if exc.status_code >= 500:
            logger.warning(
                "service_error",
                path=request.url.path,
                method=request.method,
                code=exc.code,
                error=exc.message,
            )
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), _HTTP_CODES.get(exc.status_code, "http_error")),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle validation errors with consistent JSON format."""
        return JSONResponse(
            status_code=422,
            content=_error_body("Validation error", "validation_error", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Store failures are always surfaced as internal errors."""
        logger.error(
            "store_failure",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=InternalError("Internal server error").to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, always returned as JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=InternalError("Internal server error").to_dict())
