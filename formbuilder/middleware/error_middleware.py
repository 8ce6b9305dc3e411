import logging
import traceback
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from formbuilder.config.env_config import Settings
from formbuilder.constants.error import ERROR
from formbuilder.exceptions import CustomException, error_body
from formbuilder.middleware.security_middleware import apply_security_headers

logger = logging.getLogger(__name__)


def status_for(error: Exception) -> int:
    if isinstance(error, CustomException):
        return error.status_code
    if isinstance(error, ValueError):
        return 400
    if isinstance(error, PermissionError):
        return 403
    if isinstance(error, FileNotFoundError):
        return 404
    return 500


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort translator for exceptions no route or handler dealt with."""

    def __init__(self, app, app_settings: Settings):
        super().__init__(app)
        self.app_settings = app_settings

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            return self._handle(request, e)

    def _handle(self, request: Request, error: Exception) -> JSONResponse:
        status_code = status_for(error)
        logger.error(
            f"[UNHANDLED] {request.method} {request.url.path}: {error.__class__.__name__}: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )

        debug = self.app_settings.show_debug_info
        if isinstance(error, CustomException):
            body = error_body(error.message, error.errors)
        else:
            body = error_body(str(error) if debug and str(error) else ERROR.INTERNAL_ERROR)
            body["error"] = error.__class__.__name__

        if debug:
            body["debug"] = {
                "message": str(error),
                "type": error.__class__.__name__,
                "trace": traceback.format_exception(type(error), error, error.__traceback__),
            }

        return apply_security_headers(JSONResponse(status_code=status_code, content=body))
