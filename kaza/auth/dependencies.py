"""
Request-level authentication and role guards.

The profile is always reloaded from the database; the role claim in the
token is informational and the stored role wins.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.jwt import get_token_from_request, verify_token
from kaza.db import get_db
from kaza.models import Profile, ProfileRole


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def profile_from_token(db: AsyncSession, token: Optional[str]) -> Optional[Profile]:
    """Resolve a token to an active profile, or None. Used where raising is not an option."""
    claims = verify_token(token) if token else None
    if claims is None:
        return None

    profile = await db.get(Profile, claims.profile_id)
    if profile is None or not profile.is_active:
        return None
    return profile


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """401 without a usable token, 403 for a disabled profile."""
    token = get_token_from_request(request)
    if not token:
        raise _unauthorized("Not authenticated")

    claims = verify_token(token)
    if claims is None:
        raise _unauthorized("Invalid or expired token")

    profile = await db.get(Profile, claims.profile_id)
    if profile is None:
        raise _unauthorized("Profile not found")
    if not profile.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile is disabled")

    return profile


def require_roles(*roles: ProfileRole, detail: str):
    """Build a dependency that lets through only the given roles."""

    async def guard(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return guard


require_director = require_roles(ProfileRole.DIRECTOR, detail="Director access required")

# Directors can open manager views to follow any team
require_manager = require_roles(
    ProfileRole.DIRECTOR,
    ProfileRole.MANAGER,
    detail="Manager access required",
)
