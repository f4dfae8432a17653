"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
and validation errors into JSON responses of the form {"error": "<message>"}
with appropriate status codes.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from musicdrop.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    PipelineFailedError,
    ProcessError,
    StorageError,
    ValidationException,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# Hey future me - Pydantic's exc.errors() can include the raw request body as bytes in the
# 'input' field, which JSONResponse can't serialize. Walk the structure and decode them.
def _sanitize_validation_errors(
    errors: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Sanitize validation errors by converting bytes to strings.

    Args:
        errors: List of validation error dictionaries from Pydantic

    Returns:
        Sanitized list where bytes are converted to strings
    """

    def _sanitize_value(value: Any) -> Any:
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return value.decode("latin-1")
        elif isinstance(value, dict):
            return {k: _sanitize_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_sanitize_value(item) for item in value]
        elif isinstance(value, tuple):
            return tuple(_sanitize_value(item) for item in value)
        elif isinstance(value, Exception):
            return str(value)
        return value

    return [_sanitize_value(error) for error in errors]


# Hey future me, this registers GLOBAL exception handlers for the entire app! Starlette picks
# the handler of the closest class in the MRO, so PipelineFailedError/ProcessError get their
# own handlers even though they share the DomainException base. Call this once in
# create_app(), before any request arrives.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain, validation, database and HTTP exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(
        request: Request, exc: ValidationException
    ) -> JSONResponse:
        """Rejected input (bad URL, filename, extension, size) -> 400."""
        logger.warning(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Missing or invalid login -> 401."""
        logger.info("Authentication failed at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        """Not allowed (admin required, source disabled) -> 403."""
        logger.info("Forbidden at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_403_FORBIDDEN, exc.message)

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
            },
        )
        return _error(status.HTTP_404_NOT_FOUND, exc.message)

    @app.exception_handler(DuplicateEntityException)
    async def duplicate_entity_exception_handler(
        request: Request, exc: DuplicateEntityException
    ) -> JSONResponse:
        """Handle duplicate entity exceptions with 409 Conflict."""
        logger.info("Duplicate at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_409_CONFLICT, exc.message)

    @app.exception_handler(InvalidStateException)
    async def invalid_state_exception_handler(
        request: Request, exc: InvalidStateException
    ) -> JSONResponse:
        """Handle invalid state exceptions with 409 Conflict."""
        logger.info("Invalid state at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_409_CONFLICT, exc.message)

    @app.exception_handler(PipelineFailedError)
    async def pipeline_failed_handler(
        request: Request, exc: PipelineFailedError
    ) -> JSONResponse:
        """A job ran and failed. Its row already says failed, hand back the id."""
        logger.error(
            "Job %d failed at %s: %s",
            exc.log_id,
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "log_id": exc.log_id},
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            exc.message,
            log_id=exc.log_id,
        )

    @app.exception_handler(ProcessError)
    async def process_error_handler(request: Request, exc: ProcessError) -> JSONResponse:
        """External tool failure outside of a job -> 500."""
        logger.error("External process error at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        """Filesystem or database write failure -> 500."""
        logger.error("Storage error at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic request validation errors with 422 Unprocessable Entity."""
        sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
        logger.warning(
            "Request validation error at %s: %s",
            request.url.path,
            sanitized_errors,
            extra={"path": request.url.path},
        )
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Invalid request",
            details=sanitized_errors,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions with proper logging."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log("HTTP error %d at %s: %s", exc.status_code, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    # Hey future me - SQLite answers "database is locked" when a writer holds it longer
    # than the 30s busy timeout. That's transient, so tell the client to retry.
    @app.exception_handler(OperationalError)
    async def database_operational_error_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        """Map locked/busy to 503 with Retry-After, anything else to 500."""
        error_msg = str(exc).lower()
        if "locked" in error_msg or "busy" in error_msg:
            logger.warning("Database busy at %s", request.url.path)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"error": "Database busy, please retry"},
                headers={"Retry-After": "3"},
            )

        logger.error(
            "Database error at %s: %s",
            request.url.path,
            str(exc)[:500],
            extra={"path": request.url.path},
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Database error occurred. Please try again.",
        )
