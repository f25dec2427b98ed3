"""JWT Bearer authentication middleware."""

import logging

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from reportflow.config import settings

logger = logging.getLogger(__name__)

# Paths that do not require authentication
_PUBLIC_PATHS = {
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/metrics",
    "/docs",
    "/openapi.json",
    "/redoc",
}

_ANONYMOUS = {"sub": "anonymous", "scopes": []}


def _decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


def scopes_from_claims(payload: dict) -> list[str]:
    """Read scopes from a space-delimited ``scope`` claim or a ``scopes`` list."""
    scope_claim = payload.get("scope")
    if isinstance(scope_claim, str):
        return [s for s in scope_claim.split() if s]
    scopes = payload.get("scopes")
    if isinstance(scopes, list):
        return [str(s) for s in scopes]
    return []


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate the Bearer token and attach user info to request.state."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if not settings.auth_enabled:
            request.state.user = {"sub": "local", "scopes": ["*"]}
            return await call_next(request)

        if path in _PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            request.state.user = {"sub": "anonymous", "scopes": ["*"]}
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            request.state.user = self._validate_jwt(auth_header[7:])
        else:
            # Routes enforce authentication through their dependencies
            request.state.user = dict(_ANONYMOUS)
        return await call_next(request)

    def _validate_jwt(self, token: str) -> dict:
        try:
            payload = _decode_jwt(token)
        except ValueError:
            return {**_ANONYMOUS, "_auth_error": "Invalid token"}

        return {
            "sub": payload.get("sub", ""),
            "scopes": scopes_from_claims(payload),
        }
