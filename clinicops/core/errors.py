"""Error taxonomy and the FastAPI handlers that map it to responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ClinicOpsError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(ClinicOpsError):
    """Unparsable times, missing identifiers, references to unknown records."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ClinicOpsError):
    status_code = status.HTTP_404_NOT_FOUND


class BookingConflictError(ClinicOpsError):
    """Raised only by the exclusive write path; availability checks return conflicts as data."""
    status_code = status.HTTP_409_CONFLICT


class PreconditionFailedError(ClinicOpsError):
    status_code = status.HTTP_412_PRECONDITION_FAILED


class CalendarSyncError(ClinicOpsError):
    """External calendar failure. Caught at the side-call, never surfaced."""
    status_code = status.HTTP_502_BAD_GATEWAY


def _error_body(message: str, details=None) -> dict:
    body = {'error': message}
    if details is not None:
        body['details'] = details
    return body


async def clinicops_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, ClinicOpsError):
        return await global_exception_handler(request, exc)

    if exc.status_code >= 500:
        logger.error('%s on %s %s: %s', type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.info('%s on %s %s: %s', type(exc).__name__, request.method, request.url.path, exc.message)

    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.details))


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = []
    if isinstance(exc, RequestValidationError):
        for error in exc.errors():
            errors.append(
                {
                    'field': '.'.join(str(loc) for loc in error['loc']),
                    'message': error['msg'],
                    'type': error['type'],
                }
            )

    logger.warning('Validation error on %s: %s', request.url.path, errors)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body('Invalid data', errors),
    )


async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error('Database error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body('Database unavailable.'),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        'Unhandled exception on %s %s: %s',
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body('Internal server error'),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClinicOpsError, clinicops_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
