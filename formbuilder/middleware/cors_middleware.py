from typing import List, Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
ALLOW_HEADERS = "Content-Type, Authorization, Cache-Control, Pragma, X-Requested-With"
MAX_AGE = "86400"


class CorsMiddleware(BaseHTTPMiddleware):
    """
    Attach CORS headers to every response.

    Preflight (OPTIONS) requests are answered here with an empty 204 and
    never reach the rate limiter or the routes. The request Origin is echoed
    back only when ``*`` or that origin is in the allowed list.
    """

    def __init__(self, app, allowed_origins: List[str]):
        super().__init__(app)
        self.allowed_origins = allowed_origins

    def _allowed_origin(self, origin: Optional[str]) -> Optional[str]:
        if not origin:
            return None
        if "*" in self.allowed_origins or origin in self.allowed_origins:
            return origin
        return None

    def _apply(self, request: Request, response: Response) -> Response:
        origin = self._allowed_origin(request.headers.get("origin"))
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Max-Age"] = MAX_AGE
        return response

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return self._apply(request, Response(status_code=204))

        response = await call_next(request)
        return self._apply(request, response)
