# social_scheduler/services/storage_service.py

import io
import logging
import os
import uuid
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, status
from PIL import Image, UnidentifiedImageError

from social_scheduler.core.config import get_settings

logger = logging.getLogger(__name__)

MB = 1024 * 1024
MAX_IMAGE_SIZE = 10 * MB
MAX_VIDEO_SIZE = 200 * MB
THUMBNAIL_SIZE = (400, 400)

ALLOWED_IMAGE_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp')
ALLOWED_VIDEO_TYPES = ('video/mp4', 'video/quicktime', 'video/webm')


class StorageError(Exception):
    """Object storage rejected or failed an operation"""


class UnsupportedMediaError(ValueError):
    pass


class MediaTooLargeError(ValueError):
    pass


def max_upload_size(content_type: Optional[str]) -> int:
    """Size limit for an upload of this type; UnsupportedMediaError for other types"""
    if content_type in ALLOWED_IMAGE_TYPES:
        return MAX_IMAGE_SIZE
    if content_type in ALLOWED_VIDEO_TYPES:
        return MAX_VIDEO_SIZE
    raise UnsupportedMediaError(f"File type {content_type} not supported")


def validate_media(content_type: Optional[str], file_size: int) -> None:
    """Check an upload's type and size before it is stored"""
    max_size = max_upload_size(content_type)
    if file_size > max_size:
        raise MediaTooLargeError(f"File too large. Maximum size is {max_size / MB:.0f}MB")


def is_image(content_type: Optional[str]) -> bool:
    return bool(content_type) and content_type.startswith('image/')


def generate_thumbnail(file_content: bytes) -> Optional[bytes]:
    """400x400 max JPEG thumbnail, aspect ratio kept; None if unreadable"""
    try:
        image = Image.open(io.BytesIO(file_content))
        image.thumbnail(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)

        # JPEG has no alpha channel or palette
        if image.mode in ('RGBA', 'LA', 'P'):
            image = image.convert('RGB')

        thumb_buffer = io.BytesIO()
        image.save(thumb_buffer, format='JPEG', quality=85, optimize=True)
        return thumb_buffer.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Error generating thumbnail: {e}")
        return None


def image_metadata(file_content: bytes) -> Dict[str, Any]:
    try:
        image = Image.open(io.BytesIO(file_content))
        return {
            "width": image.width,
            "height": image.height,
            "format": image.format,
            "mode": image.mode
        }
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Error reading image metadata: {e}")
        return {}


class MediaStorage:
    """Cloudflare R2 (S3 compatible) bucket holding uploaded media"""

    def __init__(self, s3_client=None, bucket_name: Optional[str] = None, cdn_domain: Optional[str] = None):
        settings = get_settings()
        self.bucket_name = bucket_name or settings.R2_BUCKET_NAME
        self.cdn_domain = cdn_domain or settings.CDN_DOMAIN
        self.s3_client = s3_client or boto3.client(
            's3',
            endpoint_url=settings.R2_ENDPOINT_URL,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name='auto'  # Cloudflare R2 uses 'auto'
        )

    def public_url(self, key: str) -> str:
        return f"https://{self.cdn_domain}/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"https://{self.cdn_domain}/"
        return url[len(prefix):] if url and url.startswith(prefix) else None

    @staticmethod
    def build_key(user_id: str, filename: Optional[str]) -> str:
        extension = os.path.splitext(filename or "")[1].lower()
        return f"uploads/{user_id}/{uuid.uuid4()}{extension}"

    def upload(self, file_content: bytes, key: str, content_type: str) -> str:
        """Store bytes under key and return the public CDN URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {key} to storage: {e}")
            raise StorageError(f"Failed to upload file to storage: {str(e)}")

        logger.info(f"Uploaded {key} ({len(file_content)} bytes)")
        return self.public_url(key)

    def delete(self, key: str) -> None:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete object with key {key}: {str(e)}")
            raise StorageError(f"Failed to delete from storage: {str(e)}")
        logger.info(f"Deleted object with key: {key}")

    def store_upload(
        self,
        user_id: str,
        filename: Optional[str],
        content_type: str,
        file_content: bytes
    ) -> Dict[str, Any]:
        """
        Validate and store an upload, plus a thumbnail for images

        Returns the `media_files` row to insert (without id/created_at).
        """
        validate_media(content_type, len(file_content))

        key = self.build_key(user_id, filename)
        public_url = self.upload(file_content, key, content_type)

        thumbnail_url = None
        metadata: Dict[str, Any] = {}
        if is_image(content_type):
            metadata = image_metadata(file_content)
            thumbnail = generate_thumbnail(file_content)
            if thumbnail:
                thumb_key = f"{os.path.splitext(key)[0]}_thumb.jpg"
                try:
                    thumbnail_url = self.upload(thumbnail, thumb_key, "image/jpeg")
                except StorageError:
                    self._delete_quietly(key)
                    raise

        return {
            "user_id": user_id,
            "original_filename": filename or os.path.basename(key),
            "file_type": content_type,
            "file_size": len(file_content),
            "storage_key": key,
            "public_url": public_url,
            "thumbnail_url": thumbnail_url,
            "metadata": metadata,
        }

    def remove_media(self, media: Dict[str, Any]) -> None:
        """Delete a media row's object and its thumbnail"""
        self.delete(media["storage_key"])
        thumb_key = self.key_from_url(media.get("thumbnail_url"))
        if thumb_key:
            self.delete(thumb_key)

    def _delete_quietly(self, key: str) -> None:
        try:
            self.delete(key)
        except StorageError as e:
            logger.error(f"Left orphaned object {key} in storage: {e}")

    def discard_upload(self, media: Dict[str, Any]) -> None:
        """Best-effort removal of objects stored for an upload that was not recorded"""
        self._delete_quietly(media["storage_key"])
        thumb_key = self.key_from_url(media.get("thumbnail_url"))
        if thumb_key:
            self._delete_quietly(thumb_key)


_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    """FastAPI dependency; 503 until R2 credentials are configured"""
    global _storage
    settings = get_settings()
    if not settings.R2_ENDPOINT_URL or not settings.R2_ACCESS_KEY_ID:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Media storage not configured"
        )
    if _storage is None:
        _storage = MediaStorage()
    return _storage
