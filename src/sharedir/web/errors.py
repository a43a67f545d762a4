"""Map exceptions to the fixed error responses.

Clients only ever see the body ``error`` with a status code; the detail is
written to the server log.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sharedir.core.errors import ForbiddenError, NotFoundError, SharedirError
from sharedir.core.logging import get_logger

_logger = get_logger(__name__)

ERROR_BODY = "error"


def error_response(status_code: int) -> PlainTextResponse:
    return PlainTextResponse(ERROR_BODY, status_code=status_code)


def _op(request: Request) -> str:
    return f"{request.method} {request.scope.get('path', '')}"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> PlainTextResponse:
        _logger.verbose(f"{_op(request)}: not found", error=exc.message)
        return error_response(404)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(request: Request, exc: ForbiddenError) -> PlainTextResponse:
        _logger.warning(f"{_op(request)}: forbidden", error=exc.message)
        return error_response(403)

    @app.exception_handler(SharedirError)
    async def _app_error(request: Request, exc: SharedirError) -> PlainTextResponse:
        _logger.error(f"{_op(request)}: failed", error_type=type(exc).__name__, error=str(exc))
        return error_response(500)

    # Filesystem failures and malformed RPC arguments (IndexError on a
    # missing positional argument) all collapse to a generic 500.
    async def _internal(request: Request, exc: Exception) -> PlainTextResponse:
        _logger.error(f"{_op(request)}: failed", error_type=type(exc).__name__, error=str(exc))
        return error_response(500)

    for exc_class in (OSError, IndexError, KeyError, TypeError, ValueError):
        app.add_exception_handler(exc_class, _internal)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        return error_response(exc.status_code)
