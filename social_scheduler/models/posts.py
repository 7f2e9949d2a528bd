from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator

from social_scheduler.utils.timezone import DATE_FORMAT, TIME_FORMAT, is_valid_timezone


class Platform(str, Enum):
    """Platforms a post can target"""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"


class PostStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"
    DELETED = "deleted"


# Maximum caption length accepted by each platform
PLATFORM_CHARACTER_LIMITS: Dict[str, int] = {
    Platform.INSTAGRAM.value: 2200,
    Platform.FACEBOOK.value: 63206,
    Platform.LINKEDIN.value: 3000,
    Platform.TWITTER.value: 280,
}

# Statuses a client may set directly; the rest come from publish/delete
EDITABLE_STATUSES = (PostStatus.DRAFT, PostStatus.SCHEDULED)


def _check_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        raise ValueError("date must be a valid YYYY-MM-DD date")
    return value


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        datetime.strptime(value, TIME_FORMAT)
    except ValueError:
        raise ValueError("time must be a valid HH:MM time")
    return value


def _check_timezone(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_valid_timezone(value):
        raise ValueError(f"Unknown timezone: {value}")
    return value


def _check_content(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("content must not be empty")
    return value


def _check_editable_status(value: Optional[PostStatus]) -> Optional[PostStatus]:
    if value is not None and value not in EDITABLE_STATUSES:
        raise ValueError("status can only be set to draft or scheduled")
    return value


class _SlotValidators(BaseModel):
    """Field checks shared by create and update payloads"""

    @validator('date', check_fields=False)
    def validate_date(cls, v):
        return _check_date(v)

    @validator('time', check_fields=False)
    def validate_time(cls, v):
        return _check_time(v)

    @validator('timezone', check_fields=False)
    def validate_timezone(cls, v):
        return _check_timezone(v)

    @validator('content', check_fields=False)
    def validate_content(cls, v):
        return _check_content(v)

    @validator('status', check_fields=False)
    def validate_status(cls, v):
        return _check_editable_status(v)


class PostCreate(_SlotValidators):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(default="09:00", pattern=r"^\d{2}:\d{2}$")
    timezone: str = Field(default="UTC", max_length=64)
    platforms: List[Platform] = Field(default_factory=list)
    platform: Optional[Platform] = None  # single-platform clients
    content: str = Field(..., max_length=63206)
    media_urls: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.SCHEDULED
    auto_publish: bool = False

    def target_platforms(self) -> List[Platform]:
        """Selected platforms, de-duplicated in selection order"""
        selected = list(self.platforms)
        if self.platform is not None:
            selected.insert(0, self.platform)
        seen = []
        for platform in selected:
            if platform not in seen:
                seen.append(platform)
        return seen


class PostUpdate(_SlotValidators):
    date: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    timezone: Optional[str] = Field(None, max_length=64)
    platform: Optional[Platform] = None
    content: Optional[str] = Field(None, max_length=63206)
    media_urls: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    auto_publish: Optional[bool] = None


class PostResponse(BaseModel):
    id: str
    user_id: str
    date: str
    time: str
    timezone: str = "UTC"
    platform: str
    content: str
    media_urls: List[str] = Field(default_factory=list)
    status: PostStatus
    previous_status: Optional[PostStatus] = None
    auto_publish: bool = False
    platform_post_id: Optional[str] = None
    error_message: Optional[str] = None
    published_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublishResponse(BaseModel):
    success: bool
    message: str
    post: PostResponse
    platform_post_id: Optional[str] = None
    error: Optional[str] = None


class EmptyTrashResponse(BaseModel):
    success: bool = True
    deleted_count: int


class PostStats(BaseModel):
    scheduled: int
    this_week: int
    platforms: int
    by_status: Dict[str, int]
    connected_platforms: List[str] = Field(default_factory=list)
