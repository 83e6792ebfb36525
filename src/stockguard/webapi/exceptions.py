"""Exception handlers translating domain errors into API responses."""

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config.logging import get_logger
from ..exceptions import (
    AlertNotFoundError,
    InvalidTransitionError,
    RuleConfigurationError,
    StockGuardError,
)
from .models.responses import ErrorResponse

logger = get_logger(__name__)

STATUS_CODES = {
    AlertNotFoundError: 404,
    InvalidTransitionError: 409,
    RuleConfigurationError: 422,
}


def _error_content(request: Request, error_type: str, message: str, status_code: int, details=None):
    error = {"type": error_type, "message": message, "status_code": status_code}
    if details:
        error["details"] = details
    return ErrorResponse(
        success=False,
        error=error,
        request_id=getattr(request.state, "request_id", None),
    ).model_dump(mode="json")


async def stockguard_exception_handler(request: Request, exc: StockGuardError) -> JSONResponse:
    """Handle domain exceptions."""
    status_code = next(
        (code for error_type, code in STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )

    log = logger.warning if status_code < 500 else logger.error
    log(
        "Domain exception occurred",
        exception_type=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
        details=exc.details,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_content(request, type(exc).__name__, exc.message, status_code, exc.details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation failures."""
    field_errors = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    logger.warning(
        "Validation error occurred",
        field_errors=field_errors,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=422,
        content=_error_content(
            request,
            "ValidationError",
            "Request validation failed",
            422,
            {"field_errors": field_errors},
        ),
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Handle domain validation raised as ValueError."""
    logger.warning("Invalid value", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=422,
        content=_error_content(request, "ValidationError", str(exc), 422),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, "HTTPException", str(exc.detail), exc.status_code),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unexpected exception occurred",
        exception_type=type(exc).__name__,
        message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    # Don't expose internal error details
    return JSONResponse(
        status_code=500,
        content=_error_content(
            request, "InternalServerError", "An unexpected error occurred", 500
        ),
    )


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""
    app.add_exception_handler(StockGuardError, stockguard_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
