from typing import Optional

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Email/password pair for sign up and sign in

    Both fields default to empty so a missing value reaches the endpoint
    and gets the friendly 400 instead of a schema error.
    """
    email: str = ""
    password: str = ""


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User model for API responses"""
    id: str
    email: Optional[str] = None
    email_confirmed: bool = False


class AuthResponse(BaseModel):
    user: Optional[UserResponse] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    confirmation_required: bool = False
    message: Optional[str] = None
