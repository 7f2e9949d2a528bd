from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MediaFileResponse(BaseModel):
    """Response model for an uploaded media file"""
    id: str
    user_id: str
    original_filename: str
    file_type: str
    file_size: int
    storage_key: str
    public_url: str
    thumbnail_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class MediaLibraryResponse(BaseModel):
    media_files: List[MediaFileResponse]
    count: int
