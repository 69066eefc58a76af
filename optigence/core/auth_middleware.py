"""Authentication dependencies for FastAPI."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from optigence.db.supabase_client import get_supabase

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


class AuthContext:
    """Context object containing authenticated user info."""

    def __init__(self, user_id: UUID, token: str, email: Optional[str] = None):
        self.user_id = user_id
        self.token = token
        self.email = email


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Resolve the caller from a Supabase JWT (Bearer auth).

    Returns None when no Authorization header is sent, so endpoints can serve
    anonymous callers with defaults. A token that is present but invalid is
    rejected with 401.
    """
    if not credentials:
        return None

    token = credentials.credentials

    try:
        client = get_supabase()
        # Validates the JWT signature and expiration
        auth_response = client.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthContext(
        user_id=UUID(auth_response.user.id),
        token=token,
        email=auth_response.user.email,
    )


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require an authenticated caller."""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth
