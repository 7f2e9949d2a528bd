from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from social_scheduler.models.posts import Platform


class CaptionTone(str, Enum):
    """Caption tone options"""
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    HUMOROUS = "humorous"
    INSPIRATIONAL = "inspirational"
    PROMOTIONAL = "promotional"


# Request Models
class CaptionRequest(BaseModel):
    """Request model for caption generation"""
    prompt: str = Field(..., min_length=1, max_length=1000, description="What the post is about")
    platform: Optional[Platform] = Field(None, description="Platform the caption is written for")
    tone: Optional[CaptionTone] = Field(None, description="Desired tone")
    include_hashtags: bool = Field(default=True, description="Whether to suggest hashtags")
    max_length: Optional[int] = Field(None, ge=10, le=5000, description="Upper bound in characters")


# Response Models
class CaptionResponse(BaseModel):
    """Response model for caption generation"""
    caption: str
    hashtags: List[str] = Field(default_factory=list)
    platform: Optional[Platform] = None
    tone: Optional[CaptionTone] = None
    model_used: str
    character_count: int
    truncated: bool = False
    processing_time: float
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PlatformInfo(BaseModel):
    id: Platform
    name: str
    character_limit: int


# Internal Models for the completion API
class ChatMessage(BaseModel):
    """Message model for chat completion requests"""
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    """Internal model for chat completion requests"""
    model: str
    messages: List[ChatMessage]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
