"""
Security Module: Authentication Foundation

Provides foundational security components including:
- Password hashing and verification
- JWT token creation and validation
- Security headers and client identification helpers

The FastAPI dependencies that resolve the current user live in
`api.dependencies`, next to the service providers they need.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from config.settings import get_settings
from core.exceptions import AuthenticationRequiredError

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 schemes; the optional one lets anonymous requests through
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

ALGORITHM = "HS256"


def get_security_headers() -> Dict[str, str]:
    """
    Security headers for every response.

    Production gets a strict CSP; other environments a relaxed one so the
    interactive docs keep working.
    """
    settings = get_settings()

    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "no-referrer",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    }

    if settings.is_production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        headers["Content-Security-Policy"] = "default-src 'self'"
    else:
        headers["Content-Security-Policy"] = (
            "default-src 'self' 'unsafe-inline' 'unsafe-eval' data: blob: https://cdn.jsdelivr.net"
        )

    return headers


class TokenData(BaseModel):
    """Claims extracted from a verified access token."""

    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    expires_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    jti: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Lifetime in seconds")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against its hash.

    Returns:
        bool: True if password matches, False otherwise (including a
        malformed stored hash)
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to encode; must include `sub` (the user id)
        expires_delta: Lifetime override, defaults to the configured expiry

    Returns:
        str: The encoded JWT token
    """
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "jti": str(uuid4()),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
        }
    )
    return jwt.encode(to_encode, settings.secret_key.get_secret_value(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthenticationRequiredError: token is invalid, expired, or was not
        issued by this service
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.debug(f"Rejected access token: {e}")
        raise AuthenticationRequiredError("Invalid token", errors=["Token is invalid or expired"], cause=e)

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing subject claim")
        raise AuthenticationRequiredError("Invalid token", errors=["Token is invalid or expired"])

    exp = payload.get("exp")
    iat = payload.get("iat")
    return TokenData(
        user_id=user_id,
        email=payload.get("email"),
        role=payload.get("role"),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc) if iat else None,
        jti=payload.get("jti"),
    )


def get_client_ip(request: Request) -> str:
    """
    Client IP address, honouring reverse-proxy headers.

    Falls back to "unknown" so the value is always usable as a rate-limit
    principal.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


__all__ = [
    "ALGORITHM",
    "Token",
    "TokenData",
    "create_access_token",
    "decode_access_token",
    "get_client_ip",
    "get_password_hash",
    "get_security_headers",
    "oauth2_scheme",
    "optional_oauth2_scheme",
    "pwd_context",
    "verify_password",
]
