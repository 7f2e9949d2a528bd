from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from social_scheduler.utils import parse_datetime_safe


class Provider(str, Enum):
    """OAuth providers an account can be linked through"""
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"


class AuthorizeResponse(BaseModel):
    provider: Provider
    authorization_url: str
    state: str


class OAuthCallbackRequest(BaseModel):
    code: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)


class SocialConnectionResponse(BaseModel):
    """Model for social connection API responses (tokens are never returned)"""
    id: str
    provider: Provider
    provider_account_id: str
    account_label: Optional[str] = None
    expires_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator('expires_at', 'created_at', 'updated_at', pre=True)
    def parse_timestamps(cls, v):
        return parse_datetime_safe(v)


class LinkResult(BaseModel):
    success: bool = True
    provider: Provider
    connections: List[SocialConnectionResponse]
