from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from formbuilder.config.env_config import Settings
from formbuilder.constants.error import ERROR
from formbuilder.exceptions import RateLimitException, error_body
from formbuilder.utils.logger_utils import log_warning
from formbuilder.utils.rate_limiter import RateLimiter

DEVELOPMENT_EXEMPT_PATHS = ("/api/health", "/api/test")


def client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, app_settings: Settings):
        super().__init__(app)
        self.limiter = limiter
        self.app_settings = app_settings

    def _exempt(self, path: str) -> bool:
        if self.app_settings.APP_ENV != "development":
            return False
        return any(prefix in path for prefix in DEVELOPMENT_EXEMPT_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._exempt(request.url.path):
            return await call_next(request)

        client = client_id(request)
        result = self.limiter.hit(client)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

        if not result.allowed:
            log_warning(context="RATE_LIMIT", message=f"{client} exceeded {result.limit} requests on {request.url.path}")
            error = RateLimitException(ERROR.TOO_MANY_REQUESTS)
            return JSONResponse(status_code=error.status_code, content=error_body(error.message), headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
