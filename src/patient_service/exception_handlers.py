"""Global exception handlers for the FastAPI application.

This module contains custom exception handlers that convert
application exceptions into proper HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from patient_service.exceptions import PatientServiceError, StoreError


def _error_body(error_type: str, message: str, detail=None) -> dict:
    body = {"type": error_type, "message": message}
    if detail is not None:
        body["detail"] = detail
    return body


async def patient_service_error_handler(request: Request, exc: PatientServiceError) -> JSONResponse:
    """Render a ``PatientServiceError`` with the status its class declares."""
    if isinstance(exc, StoreError):
        logger.error(f"Record store failure on {request.method} {request.url.path}: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path} rejected with {exc.http_status}: {exc}")
    return JSONResponse(status_code=exc.http_status, content=_error_body(exc.error_type, exc.message, exc.detail))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer unparsable bodies and malformed path parameters with 400 instead of 422."""
    violations = [
        {"field": ".".join(str(part) for part in error["loc"] if part not in ("body", "path", "query")), "message": error["msg"]}
        for error in exc.errors()
    ]
    logger.debug(f"{request.method} {request.url.path} request validation failed: {violations}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(_error_body("validation_error", "Request validation failed", violations)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(PatientServiceError, patient_service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)  # type: ignore[arg-type]
    logger.debug("Registered exception handlers")
