"""
Credentials and Identity

Password hashing (bcrypt), bearer session tokens (JWT) and the FastAPI
dependencies that resolve the calling user or check the admin key.
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import structlog
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from webhub.config import get_settings
from webhub.errors import AuthenticationError, AuthorizationError

logger = structlog.get_logger(__name__)
settings = get_settings()

SESSION_TOKEN_TYPE = "webhub_session"

auth_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    """bcrypt hash with the configured cost factor"""
    salt = bcrypt.gensalt(rounds=settings.security.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# =============================================================================
# SESSION TOKENS
# =============================================================================

def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> str:
    """Create a signed session token for API authentication."""
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or settings.security.jwt_expiration_hours)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))

    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email

    return jwt.encode(
        claims,
        settings.security.jwt_secret_key.get_secret_value(),
        algorithm=settings.security.jwt_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        AuthenticationError: Bad signature, expired, wrong type or no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.security.jwt_secret_key.get_secret_value(),
            algorithms=[settings.security.jwt_algorithm],
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    if str(payload.get("type", "")) != SESSION_TOKEN_TYPE:
        raise AuthenticationError("Invalid token type")
    if not str(payload.get("sub", "")).strip():
        raise AuthenticationError("Token missing subject")

    return payload


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> str:
    """Resolve the authenticated user from the Bearer token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authentication required")
    return str(decode_access_token(credentials.credentials)["sub"])


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> Optional[str]:
    """Like ``get_current_user_id`` but anonymous callers resolve to None."""
    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    return str(decode_access_token(credentials.credentials)["sub"])


def check_admin_key(supplied: Optional[str]) -> bool:
    """Constant-time comparison against the configured admin key"""
    expected = settings.security.admin_key.get_secret_value()
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def require_admin_key(
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Gate admin routes on the shared-secret header; no session involved."""
    if not check_admin_key(x_admin_key):
        logger.warning("Admin key rejected", supplied=bool(x_admin_key))
        raise AuthorizationError("Unauthorized")
