import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from social_scheduler.utils.database import get_database

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def user_to_dict(user: Any) -> Dict[str, Any]:
    """Flatten a Supabase auth user into the dict routers work with"""
    return {
        "id": str(user.id),
        "email": getattr(user, "email", None),
        "email_confirmed": bool(getattr(user, "email_confirmed_at", None)),
    }


async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token. Please include valid Bearer token in Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_current_user_token),
    db=Depends(get_database)
) -> Dict[str, Any]:
    """
    Get the current authenticated user

    The bearer token is the Supabase access token returned by sign in;
    Supabase verifies it and returns the user it belongs to.
    """
    try:
        response = db.auth.get_user(token)
    except Exception as e:
        logger.error(f"Token verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token verification failed: {str(e)}. Please sign in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not response or not response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_to_dict(response.user)
