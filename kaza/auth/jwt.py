"""
Access token verification.

Tokens are issued by the external auth provider and signed with the shared
secret; create_access_token exists for tooling and tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from kaza.config import settings
from kaza.models.profile import ProfileRole

TOKEN_TYPE = "access"
COOKIE_NAME = "access_token"


@dataclass(frozen=True)
class TokenClaims:
    profile_id: int
    role: ProfileRole


def create_access_token(
    profile_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token the same way the auth provider does.

    Args:
        profile_id: Profile's database ID
        role: Profile role (DIRECTOR/MANAGER/BROKER)
        expires_delta: Lifetime, settings.jwt_expire_hours by default
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(hours=settings.jwt_expire_hours)

    payload = {
        "sub": str(profile_id),
        "role": ProfileRole(role).value,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[TokenClaims]:
    """Decode a token. None if the signature, expiry, type or claims are invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != TOKEN_TYPE:
        return None

    try:
        return TokenClaims(
            profile_id=int(payload["sub"]),
            role=ProfileRole(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def get_token_from_request(request) -> Optional[str]:
    """
    Bearer token from the Authorization header, else the access_token cookie.

    Works for both HTTP requests and WebSocket connections.
    """
    authorization = request.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get(COOKIE_NAME)
