from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from eventboard.core.config import settings

HSTS_VALUE = "max-age=63072000; includeSubDomains"

# Paths that serve HTML (interactive docs) and need scripts and styles
DOCS_PATHS = ("/docs", "/redoc")


def headers_for(env: str) -> dict[str, str]:
    """Headers stamped on every JSON response in the given environment."""
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    }
    if env != "local":
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, env: str | None = None) -> None:
        super().__init__(app)
        self.headers = headers_for(env or settings.env)

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        if not settings.security_headers_enabled:
            return response

        path = request.url.path
        for name, value in self.headers.items():
            if name == "Content-Security-Policy" and path.startswith(DOCS_PATHS):
                continue
            response.headers.setdefault(name, value)

        # Tokens and account data must never land in a shared cache
        if path.startswith("/v1/"):
            response.headers.setdefault("Cache-Control", "no-store")
        return response
