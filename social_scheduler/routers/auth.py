import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from social_scheduler.dependencies.auth import get_current_user, get_current_user_token, user_to_dict
from social_scheduler.models.users import AuthResponse, Credentials, RefreshRequest, UserResponse
from social_scheduler.utils.database import get_auth_client, get_database

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


def _require_credentials(credentials: Credentials) -> Dict[str, str]:
    email = credentials.email.strip()
    if not email or not credentials.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter email and password"
        )
    return {"email": email, "password": credentials.password}


def _session_response(response: Any, message: str = None) -> Dict[str, Any]:
    session = response.session
    return {
        "user": user_to_dict(response.user) if response.user else None,
        "access_token": session.access_token if session else None,
        "refresh_token": session.refresh_token if session else None,
        "expires_in": session.expires_in if session else None,
        "confirmation_required": session is None,
        "message": message,
    }


@router.post("/signup", response_model=AuthResponse)
async def signup(credentials: Credentials, auth_client=Depends(get_auth_client)):
    """
    Create an account

    When the project requires email confirmation Supabase returns no
    session; the client is told to check its inbox instead.
    """
    payload = _require_credentials(credentials)
    try:
        response = auth_client.auth.sign_up(payload)
    except Exception as e:
        logger.error(f"Sign up failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Signed up {payload['email']}")
    if response.session is None:
        return _session_response(response, "Check your email to confirm your account!")
    return _session_response(response, "Account created")


@router.post("/signin", response_model=AuthResponse)
async def signin(credentials: Credentials, auth_client=Depends(get_auth_client)):
    payload = _require_credentials(credentials)
    try:
        response = auth_client.auth.sign_in_with_password(payload)
    except Exception as e:
        logger.error(f"Sign in failed for {payload['email']}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if response.session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sign in failed")
    return _session_response(response)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(request: RefreshRequest, auth_client=Depends(get_auth_client)):
    try:
        response = auth_client.auth.refresh_session(request.refresh_token)
    except Exception as e:
        logger.error(f"Session refresh failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    if response.session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired, please sign in again")
    return _session_response(response)


@router.post("/signout")
async def signout(
    token: str = Depends(get_current_user_token),
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Revoke the session the bearer token belongs to"""
    try:
        db.auth.admin.sign_out(token)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sign out: {str(e)}"
        )
    logger.info(f"Signed out user {current_user['id']}")
    return {"success": True, "message": "Signed out"}


@router.get("/session", response_model=UserResponse)
@router.get("/me", response_model=UserResponse, include_in_schema=False)
async def get_session(current_user: Dict[str, Any] = Depends(get_current_user)):
    """Current authenticated user"""
    return current_user
