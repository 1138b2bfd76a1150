from typing import Callable, Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from jwt_refresh.core.exceptions.auth import TokenAuthException
from jwt_refresh.services.jwt_auth import JWTAuth

# Paths served without authentication
DEFAULT_EXEMPT_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}

EXEMPT_PREFIXES = ("/docs", "/redoc", "/openapi")


class JWTMiddleware(BaseHTTPMiddleware):
    """
    Middleware authenticating every request with a JWT.

    Accepted tokens are exposed on request.state, tokens that expired within the
    auto refresh window are re-signed and the new token is returned on the same
    channel (Set-Authorization header or cookie). Rejected requests get a 401
    JSON response; with passthrough enabled they continue unauthenticated.
    """

    def __init__(
        self,
        app: ASGIApp,
        auth: JWTAuth,
        exempt_paths: Iterable[str] | None = None,
    ):
        super().__init__(app)
        self.auth = auth
        self.exempt_paths = set(exempt_paths if exempt_paths is not None else DEFAULT_EXEMPT_PATHS)

    def _is_exempt(self, request: Request) -> bool:
        """Check if the request path skips authentication."""
        path = request.url.path

        if path in self.exempt_paths:
            return True

        return any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._is_exempt(request):
            return await call_next(request)

        options = self.auth.resolve_options()

        try:
            outcome = await self.auth.authenticate(request, options)
        except TokenAuthException as e:
            # Raised errors would skip FastAPI's handlers from inside a middleware
            logger.warning(
                f"JWT authentication failed [{e.kind}] {request.method} {request.url.path}"
            )
            return JSONResponse(
                status_code=e.status_code,
                content={"detail": e.detail},
                headers=e.headers,
            )

        if outcome.authenticated:
            self.auth.populate_state(request, outcome, options)

        response = await call_next(request)

        if outcome.reissued and outcome.token:
            self.auth.write_token(response, outcome.token, options)

        return response
