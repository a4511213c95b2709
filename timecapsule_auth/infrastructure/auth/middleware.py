"""
Authentication middleware and dependencies for FastAPI.

This module provides the bearer token dependency, the administrative key
check and the response middleware used by the application.
"""

import hmac
import logging
import secrets
from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import Unavailable
from .jwt_service import InvalidTokenException, TokenClaims, TokenExpiredException

logger = logging.getLogger(__name__)


class JWTBearer(HTTPBearer):
    """
    JWT Bearer token authentication.

    Validates the token in the Authorization header with the application's
    user service and stores the identity on ``request.state``.
    """

    def __init__(self, auto_error: bool = True):
        super().__init__(auto_error=False)
        self.raise_on_missing = auto_error

    async def __call__(self, request: Request) -> TokenClaims | None:  # type: ignore[override]
        """
        Validate JWT token from Authorization header.

        Returns:
            Verified token claims

        Raises:
            HTTPException: If the header is missing or the token is invalid
        """
        credentials: HTTPAuthorizationCredentials | None = await super().__call__(request)

        if not credentials:
            if self.raise_on_missing:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authorization required",
                    headers={"WWW-Authenticate": "Bearer"},
                )
            return None

        user_service = request.app.state.user_service
        try:
            claims: TokenClaims = await user_service.validate_token(credentials.credentials)
        except TokenExpiredException:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except InvalidTokenException as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(e),
                headers={"WWW-Authenticate": "Bearer"},
            )
        except Unavailable as e:
            logger.error(f"Token verification unavailable: {e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

        # Store account context in request state
        request.state.account_id = claims.account_id
        request.state.role = claims.role
        return claims


class AdminKeyAuth:
    """
    Administrative key dependency.

    Guards operations that act on other accounts, such as approval. The key
    is compared against the ``X-Admin-Key`` header. Without a configured key
    the guard is open outside production.
    """

    header_name = "X-Admin-Key"

    async def __call__(self, request: Request) -> bool:
        app_config = request.app.state.config.app
        expected = app_config.admin_api_key

        if not expected:
            if app_config.is_production:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Administrative operations are disabled",
                )
            return True

        supplied = request.headers.get(self.header_name, "")
        if not hmac.compare_digest(supplied.encode(), expected.encode()):
            logger.warning(f"Rejected administrative request to {request.url.path}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Administrative key required"
            )
        return True


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security headers middleware.

    Adds security headers to all responses.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"

        return response  # type: ignore[no-any-return]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID middleware.

    Adds unique request ID for tracing.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Add request ID to request and response."""
        request_id = request.headers.get("X-Request-ID")
        if not request_id:
            request_id = f"req_{secrets.token_urlsafe(16)}"

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response  # type: ignore[no-any-return]
