"""Domain errors and the single boundary that renders them.

Learn: Services and route handlers never build error responses
themselves. They raise one of the errors below and the exception
handlers installed by install_exception_handlers() translate it into
a status code plus the uniform envelope {"success": false, "message": ...}.

Anything that is not a MediaHubError is logged with its traceback and
rendered as a bare 500 so internals never reach the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class MediaHubError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(MediaHubError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(MediaHubError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(MediaHubError):
    status_code = 404
    default_message = "Not found"


class Conflict(MediaHubError):
    status_code = 409
    default_message = "Conflict"


class InternalFailure(MediaHubError):
    status_code = 500


class TokenIssuanceFailure(InternalFailure):
    default_message = "Failed to generate tokens"


class UploadFailure(InternalFailure):
    default_message = "Failed to upload file"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


async def _handle_domain_error(request: Request, exc: MediaHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request.failed",
            path=request.url.path,
            error=type(exc).__name__,
            message=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    return error_response(exc.status_code, exc.message)


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # First problem only, e.g. "body.password: Field required"
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{loc}: {first.get('msg', 'invalid')}" if loc else first.get("msg", message)
    return error_response(400, message)


async def _handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return error_response(500, MediaHubError.default_message)


def install_exception_handlers(app: FastAPI) -> None:
    """Register the boundary translators on the app."""
    app.add_exception_handler(MediaHubError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected)
