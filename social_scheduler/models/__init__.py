from .posts import Platform, PostStatus, PostCreate, PostUpdate, PostResponse
from .social_connections import Provider

__all__ = [
    "Platform",
    "PostStatus",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "Provider",
]
