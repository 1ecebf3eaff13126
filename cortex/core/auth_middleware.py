"""Authentication middleware for FastAPI."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cortex.core.config import get_settings
from cortex.core.schemas_auth import User, UserRole
from cortex.db.users import get_user

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)

# System admin user for API key auth
SYSTEM_ADMIN = User(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="system@cortex-gateway.io",
    role=UserRole.ADMIN,
    full_name="System Admin",
)


class AuthContext:
    """Context object containing authenticated user info."""

    def __init__(self, user: User, token: str):
        self.user = user
        self.token = token
        self.user_id = user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    def is_admin(self) -> bool:
        return self.user.role == UserRole.ADMIN

    def is_manager(self) -> bool:
        return self.user.role == UserRole.MANAGER


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[AuthContext]:
    """
    Extract and validate the current user from the request.

    Supports two authentication methods:
    1. Supabase JWT tokens (Bearer auth)
    2. Admin API key (X-API-Key header) - for internal tools

    Returns None if no valid auth is present.
    """
    admin_api_key = get_settings().ADMIN_API_KEY
    if x_api_key and admin_api_key and x_api_key == admin_api_key:
        logger.debug("Authenticated via admin API key")
        return AuthContext(user=SYSTEM_ADMIN, token="api-key")

    if not credentials:
        return None

    token = credentials.credentials

    try:
        from cortex.db.supabase_client import get_supabase

        client = get_supabase()

        # Validates the JWT signature and expiration
        auth_response = client.auth.get_user(token)

        if not auth_response or not auth_response.user:
            return None

        row = get_user(UUID(auth_response.user.id))
        if not row:
            logger.warning(f"User {auth_response.user.id} exists in Supabase but not in users table")
            return None

        return AuthContext(user=User(**row), token=token)

    except Exception as e:
        logger.warning(f"Auth error: {e}")
        return None


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require authentication. Raises 401 if not authenticated."""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


async def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the user to be an admin."""
    if not auth.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return auth
