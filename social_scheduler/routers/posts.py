import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.dependencies.timezone import get_request_timezone
from social_scheduler.models.posts import (
    EmptyTrashResponse,
    PostCreate,
    PostResponse,
    PostStats,
    PostStatus,
    PostUpdate,
    PublishResponse,
)
from social_scheduler.services import post_service
from social_scheduler.services.platform_publisher import PlatformPublisher, get_platform_publisher
from social_scheduler.utils.database import get_database
from social_scheduler.utils.timezone import today_in

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/posts",
    tags=["posts"],
    dependencies=[Depends(get_current_user)]
)


def _service_error(e: Exception) -> Optional[HTTPException]:
    """Map post service exceptions to the HTTP error users see"""
    if isinstance(e, post_service.PostNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if isinstance(e, post_service.InvalidPostStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, (post_service.ConnectionNotFoundError, ValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return None


DOMAIN_ERRORS = (
    post_service.PostNotFoundError,
    post_service.InvalidPostStateError,
    post_service.ConnectionNotFoundError,
    ValueError,
)


@router.get("/", response_model=List[PostResponse])
async def get_posts(
    status_filter: Optional[PostStatus] = Query(None, alias="status"),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Get the user's posts, date then time ascending; trash excluded unless status=deleted"""
    try:
        return post_service.list_posts(
            db,
            current_user["id"],
            status=status_filter.value if status_filter else None,
            start_date=start_date,
            end_date=end_date
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch posts: {str(e)}"
        )


@router.post("/", response_model=List[PostResponse], status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Create a post on every selected platform (one row each, one insert)"""
    try:
        return post_service.create_posts(db, current_user["id"], post_data)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create post: {str(e)}"
        )


# Trash and stats routes are declared before /{post_id} so they are not read as ids
@router.get("/trash", response_model=List[PostResponse])
async def get_trash(
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        return post_service.list_trash(db, current_user["id"])
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch trash: {str(e)}"
        )


@router.delete("/trash", response_model=EmptyTrashResponse)
async def empty_trash(
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Permanently delete every post in the trash"""
    try:
        deleted_count = post_service.empty_trash(db, current_user["id"])
        return {"success": True, "deleted_count": deleted_count}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to empty trash: {str(e)}"
        )


@router.get("/stats/summary", response_model=PostStats)
async def get_posts_summary(
    tz: str = Depends(get_request_timezone),
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Dashboard counters: scheduled, this week, platforms"""
    try:
        return post_service.post_stats(db, current_user["id"], today_in(tz))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch stats: {str(e)}"
        )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        return post_service.get_post(db, current_user["id"], post_id)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch post: {str(e)}"
        )


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    post_data: PostUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Partial update; published and deleted posts are read-only"""
    try:
        return post_service.update_post(db, current_user["id"], post_id, post_data)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update post: {str(e)}"
        )


@router.delete("/{post_id}", response_model=PostResponse)
async def delete_post(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Move a post to the trash"""
    try:
        return post_service.soft_delete_post(db, current_user["id"], post_id)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete post: {str(e)}"
        )


@router.post("/{post_id}/restore", response_model=PostResponse)
async def restore_post(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        return post_service.restore_post(db, current_user["id"], post_id)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to restore post: {str(e)}"
        )


@router.delete("/{post_id}/permanent")
async def delete_post_permanently(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        post_service.delete_post_permanently(db, current_user["id"], post_id)
        return {"success": True, "message": "Post deleted permanently"}
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete post: {str(e)}"
        )


@router.post("/{post_id}/publish", response_model=PublishResponse)
async def publish_post(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database),
    publisher: PlatformPublisher = Depends(get_platform_publisher)
):
    """
    Publish a post now through the linked account for its platform

    A platform rejection is not an HTTP error: the post is marked failed
    and the response carries success=false with the platform's message.
    """
    try:
        post, result = await post_service.publish_post(db, current_user["id"], post_id, publisher)
    except DOMAIN_ERRORS as e:
        raise _service_error(e)
    except Exception as e:
        logger.error(f"Error in publish_post: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to publish post: {str(e)}"
        )

    if result.succeeded:
        return PublishResponse(
            success=True,
            message=f"Published to {post['platform']}",
            post=post,
            platform_post_id=result.platform_post_id
        )
    return PublishResponse(
        success=False,
        message=f"Publishing to {post['platform']} failed",
        post=post,
        error=result.error_message
    )
