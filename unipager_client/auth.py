"""Token authentication and security middleware for the operator panel."""

from __future__ import annotations

import hmac
import logging
import time
from collections import defaultdict
from typing import Any, cast

from aiohttp import web

logger = logging.getLogger(__name__)

TOKEN_QUERY_PARAM = "token"

FAILED_AUTH_LIMIT_ATTEMPTS = 5
FAILED_AUTH_LIMIT_WINDOW = 300


class TokenAuth:
    """Checks a shared bearer token for panel requests."""

    def __init__(self, auth_token: str) -> None:
        """Initialize token authentication.

        Args:
            auth_token: Secret token panel clients must present
        """
        self.auth_token = auth_token
        self.failed_attempts: dict[str, list[float]] = defaultdict(list)

    def verify_token(self, token: str | None) -> bool:
        """Verify authentication token using constant-time comparison.

        Args:
            token: Token to verify

        Returns:
            True if token is valid, False otherwise
        """
        if not token or not self.auth_token:
            return False

        return hmac.compare_digest(token.encode(), self.auth_token.encode())

    def is_rate_limited(self, client_ip: str) -> bool:
        current_time = time.time()
        self.failed_attempts[client_ip] = [
            t for t in self.failed_attempts[client_ip] if current_time - t < FAILED_AUTH_LIMIT_WINDOW
        ]
        return len(self.failed_attempts[client_ip]) >= FAILED_AUTH_LIMIT_ATTEMPTS

    def record_failure(self, client_ip: str) -> None:
        self.failed_attempts[client_ip].append(time.time())
        logger.warning(
            "Failed panel authentication from %s (%d attempts)",
            client_ip,
            len(self.failed_attempts[client_ip]),
        )


def request_token(request: web.Request) -> str | None:
    """Extract the token from the Authorization header or the query string."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer ") :].strip()
    return request.query.get(TOKEN_QUERY_PARAM)


@web.middleware
async def auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Middleware to enforce token authentication.

    Args:
        request: HTTP request
        handler: Request handler

    Returns:
        HTTP response
    """
    token_auth: TokenAuth | None = request.app.get("token_auth")

    if not token_auth:
        return cast(web.StreamResponse, await handler(request))

    client_ip = request.remote or "unknown"
    if token_auth.is_rate_limited(client_ip):
        logger.warning("Rate limit exceeded for panel authentication from %s", client_ip)
        return web.json_response(
            {"error": "Too many failed attempts. Please try again later."}, status=429
        )

    if not token_auth.verify_token(request_token(request)):
        token_auth.record_failure(client_ip)
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return web.Response(status=401, text="Unauthorized")

        return web.json_response({"error": "Unauthorized"}, status=401)

    token_auth.failed_attempts.pop(client_ip, None)
    return cast(web.StreamResponse, await handler(request))


@web.middleware
async def security_headers_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Middleware to add security headers.

    Args:
        request: HTTP request
        handler: Request handler

    Returns:
        HTTP response with security headers
    """
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Cache-Control"] = "no-store"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

    return cast(web.StreamResponse, response)
