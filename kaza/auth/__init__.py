"""Authentication module."""

from kaza.auth.dependencies import get_current_user, require_director, require_manager, require_roles
from kaza.auth.jwt import create_access_token, verify_token

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_user",
    "require_director",
    "require_manager",
    "require_roles",
]
