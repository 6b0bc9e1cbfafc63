"""
FastAPI dependency for API key admission.

Flow:
  1. Extract the key from `Authorization: Bearer <key>`,
     falling back to `X-API-Key: <key>`
  2. Ask the app's AuthGate for a decision on the route's sport
  3. Allow → attach X-RateLimit-* headers, return the Allow context
  4. Deny  → raise ApiError with the status for the reason:
       not_found / expired / revoked → 401
       scope_denied                  → 403
       rate_limited                  → 429 + Retry-After
       unavailable                   → 503

Security:
  • Raw keys are NEVER logged
  • The gate hashes before lookup, so storage never sees the raw key
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable

from fastapi import Header, HTTPException, Request, Response, status

from sports_api.auth.errors import DenyReason
from sports_api.auth.gate import Allow, AuthGate, Deny

_MISSING_KEY_MESSAGE = (
    "Missing API key. Use 'Authorization: Bearer <key>' or 'X-API-Key: <key>' header."
)

_DENY_STATUS: dict[DenyReason, int] = {
    DenyReason.NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    DenyReason.EXPIRED: status.HTTP_401_UNAUTHORIZED,
    DenyReason.REVOKED: status.HTTP_401_UNAUTHORIZED,
    DenyReason.SCOPE_DENIED: status.HTTP_403_FORBIDDEN,
    DenyReason.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    DenyReason.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_DENY_MESSAGES: dict[DenyReason, str] = {
    DenyReason.NOT_FOUND: "Invalid API key.",
    DenyReason.EXPIRED: "API key has expired.",
    DenyReason.REVOKED: "API key has been revoked.",
    DenyReason.SCOPE_DENIED: "API key does not have access to {sport} data.",
    DenyReason.RATE_LIMITED: "Rate limit exceeded. Please wait before making more requests.",
    DenyReason.UNAVAILABLE: "Authentication is temporarily unavailable. Please retry shortly.",
}

# Envelope codes by HTTP status, also used for errors raised outside the gate
ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMIT_EXCEEDED",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


class ApiError(HTTPException):
    """HTTPException carrying the envelope error code."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code or ERROR_CODES.get(status_code, "ERROR")


def extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    """Bearer token wins; X-API-Key is the fallback. Blank values count as missing."""
    if authorization:
        parts = authorization.split(" ", maxsplit=1)
        if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
            return parts[1].strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def deny_to_error(deny: Deny, sport: str, *, credential_present: bool = True) -> ApiError:
    """Translate a gate denial into the HTTP error the client sees."""
    status_code = _DENY_STATUS[deny.reason]

    if deny.reason is DenyReason.NOT_FOUND and not credential_present:
        message = _MISSING_KEY_MESSAGE
    else:
        message = _DENY_MESSAGES[deny.reason].format(sport=sport)

    headers: dict[str, str] = {}
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    if deny.reason is DenyReason.RATE_LIMITED and deny.retry_after is not None:
        headers["Retry-After"] = str(max(1, math.ceil(deny.retry_after)))

    return ApiError(status_code, message, headers=headers or None)


def get_gate(request: Request) -> AuthGate:
    return request.app.state.gate


def require_sport(sport: str) -> Callable[..., Awaitable[Allow]]:
    """
    Build the admission dependency for one sport.

    Usage in routers:
        Auth = Annotated[Allow, Depends(require_sport("soccer"))]
    """

    async def admit(
        request: Request,
        response: Response,
        authorization: str | None = Header(default=None, alias="Authorization"),
        x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    ) -> Allow:
        raw_key = extract_api_key(authorization, x_api_key)
        decision = await get_gate(request).authorize(raw_key, sport)

        if isinstance(decision, Deny):
            raise deny_to_error(decision, sport, credential_present=raw_key is not None)

        response.headers["X-RateLimit-Limit"] = str(decision.rate_limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(max(1, math.ceil(decision.reset_after)))
        return decision

    admit.__name__ = f"require_{sport}_access"
    return admit
