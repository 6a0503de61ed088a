"""
Rate-limit enforcement at the HTTP boundary.

`RateLimitDependency` guards individual routes with a named policy;
`GlobalRateLimitMiddleware` applies the per-IP budget to every request.
Both attach `X-RateLimit-*` headers and answer 429 when the window is
exhausted. A store outage never blocks: the limiter fails open.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config.constants import RATE_LIMITS, RateLimitPolicy
from container import get_rate_limiter
from core.exceptions import AuthenticationRequiredError, RateLimitExceededError
from core.models import RateLimitDecision
from security import decode_access_token, get_client_ip, optional_oauth2_scheme
from services.rate_limiter import RateLimiter

EXEMPT_PATHS = frozenset({"/health", "/metrics", "/docs", "/redoc", "/openapi.json"})


def token_principal(token: Optional[str]) -> Optional[str]:
    """User id from a bearer token, without touching the database."""
    if not token:
        return None
    try:
        return str(UUID(decode_access_token(token).user_id))
    except (AuthenticationRequiredError, ValueError):
        return None


class RateLimitDependency:
    """
    FastAPI dependency consuming one request from `policy`.

    The principal is the authenticated user id when `per_user` is set and
    a valid token is present, the client IP otherwise.
    """

    def __init__(self, policy: RateLimitPolicy, *, per_user: bool = True):
        self.policy = policy
        self.per_user = per_user

    async def __call__(
        self,
        request: Request,
        response: Response,
        token: Optional[str] = Depends(optional_oauth2_scheme),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitDecision:
        principal = (token_principal(token) if self.per_user else None) or get_client_ip(request)
        decision = await limiter.consume(self.policy, principal)
        headers = decision.headers()

        if not decision.allowed:
            raise RateLimitExceededError(
                self.policy.message,
                retry_after=decision.retry_after(limiter.now_ms()),
                headers=headers,
            )

        response.headers.update(headers)
        return decision


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP budget across the whole API."""

    def __init__(self, app, policy: RateLimitPolicy = RATE_LIMITS.GLOBAL):
        super().__init__(app)
        self.policy = policy

    def _limiter(self, request: Request) -> RateLimiter:
        # honour test overrides of the limiter dependency
        provider = request.app.dependency_overrides.get(get_rate_limiter, get_rate_limiter)
        return provider()

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limiter = self._limiter(request)
        decision = await limiter.consume(self.policy, get_client_ip(request))
        headers = decision.headers()

        if not decision.allowed:
            retry_after = decision.retry_after(limiter.now_ms())
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": self.policy.message, "retryAfter": retry_after},
                headers={**headers, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
