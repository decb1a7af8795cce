"""Authentication middleware."""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that extracts a Bearer token into request.state.user."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.user = None

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            provider = getattr(request.app.state, "auth_provider", None)
            if provider is not None:
                validation = provider.validate_token(token)
                if validation.valid:
                    request.state.user = validation.user

        return await call_next(request)
