import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.models.media import MediaFileResponse, MediaLibraryResponse
from social_scheduler.services.storage_service import (
    MediaStorage,
    MediaTooLargeError,
    StorageError,
    UnsupportedMediaError,
    get_media_storage,
    max_upload_size,
    validate_media,
)
from social_scheduler.utils.database import MEDIA_TABLE, get_database, transform_media_data

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/media",
    tags=["media"],
    dependencies=[Depends(get_current_user)]
)


@router.post("/upload", response_model=MediaFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database),
    storage: MediaStorage = Depends(get_media_storage)
):
    """Upload an image or video; images also get a thumbnail"""
    try:
        # Declared size first, then never buffer more than one byte past the limit
        validate_media(file.content_type, file.size or 0)
        file_content = await file.read(max_upload_size(file.content_type) + 1)
        media_record = storage.store_upload(
            current_user["id"], file.filename, file.content_type, file_content
        )

        try:
            result = db.table(MEDIA_TABLE).insert(media_record).execute()
            if not result.data:
                raise RuntimeError("Failed to create media record in database")
        except Exception:
            storage.discard_upload(media_record)
            raise

        logger.info(f"User {current_user['id']} uploaded {media_record['storage_key']}")
        return transform_media_data(result.data[0])

    except UnsupportedMediaError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MediaTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error uploading media: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload media file: {str(e)}"
        )


@router.get("/", response_model=MediaLibraryResponse)
async def get_media_library(
    limit: int = 50,
    offset: int = 0,
    file_type: Optional[str] = None,  # 'image' or 'video'
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Get user's media library, newest first"""
    try:
        query = db.table(MEDIA_TABLE).select("*").eq("user_id", current_user["id"])

        if file_type in ('image', 'video'):
            query = query.like("file_type", f"{file_type}/%")

        result = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        media_files = [transform_media_data(m) for m in result.data or []]
        return {"media_files": media_files, "count": len(media_files)}

    except Exception as e:
        logger.error(f"Error getting media library: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get media library: {str(e)}"
        )


@router.delete("/{media_id}")
async def delete_media(
    media_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database),
    storage: MediaStorage = Depends(get_media_storage)
):
    """Delete the stored objects, then the row"""
    try:
        media_response = db.table(MEDIA_TABLE).select("*").eq("id", media_id).eq(
            "user_id", current_user["id"]
        ).execute()

        if not media_response.data:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Media file not found"
            )

        storage.remove_media(media_response.data[0])
        db.table(MEDIA_TABLE).delete().eq("id", media_id).eq("user_id", current_user["id"]).execute()

        return {"success": True, "message": "Media file deleted successfully"}

    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting media: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete media file: {str(e)}"
        )
