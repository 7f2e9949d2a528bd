"""
Post Service
Post CRUD on the Supabase `posts` table: multi-platform fan-out on save,
soft delete / restore through the status column, and manual publishing.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from social_scheduler.models.posts import Platform, PostCreate, PostStatus, PostUpdate
from social_scheduler.services import calendar_service
from social_scheduler.services.platform_publisher import PlatformPublisher, PublishResult
from social_scheduler.utils.database import CONNECTIONS_TABLE, POSTS_TABLE, transform_post_data
from social_scheduler.utils.encryption import decrypt_token
from social_scheduler.utils.timezone import utc_now_iso

logger = logging.getLogger(__name__)

# Statuses from which a post may still be edited or published
OPEN_STATUSES = (PostStatus.DRAFT.value, PostStatus.SCHEDULED.value, PostStatus.FAILED.value)


class PostNotFoundError(Exception):
    """No post with this id for this user"""


class InvalidPostStateError(Exception):
    """The operation is not allowed in the post's current status"""


class ConnectionNotFoundError(Exception):
    """No linked account for the platform a post targets"""


def list_posts(
    db,
    user_id: str,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> List[Dict[str, Any]]:
    """User's posts ordered by date then time; trash only when asked for"""
    query = db.table(POSTS_TABLE).select('*').eq('user_id', user_id)

    if status:
        query = query.eq('status', status)
    else:
        query = query.neq('status', PostStatus.DELETED.value)
    if start_date:
        query = query.gte('date', start_date)
    if end_date:
        query = query.lte('date', end_date)

    response = query.order('date').order('time').execute()
    return [transform_post_data(post) for post in response.data or []]


def get_post(db, user_id: str, post_id: str) -> Dict[str, Any]:
    response = db.table(POSTS_TABLE).select('*').eq('id', post_id).eq('user_id', user_id).execute()
    if not response.data:
        raise PostNotFoundError(post_id)
    return transform_post_data(response.data[0])


def create_posts(db, user_id: str, post: PostCreate) -> List[Dict[str, Any]]:
    """Fan a post out into one row per selected platform, in one insert"""
    platforms = post.target_platforms()
    if not platforms:
        raise ValueError("Select at least one platform")

    rows = [
        {
            "user_id": user_id,
            "date": post.date,
            "time": post.time,
            "timezone": post.timezone,
            "platform": platform.value,
            "content": post.content,
            "media_urls": post.media_urls,
            "status": post.status.value,
            "auto_publish": post.auto_publish,
        }
        for platform in platforms
    ]

    response = db.table(POSTS_TABLE).insert(rows).execute()
    if not response.data:
        raise RuntimeError("Failed to save post")

    logger.info(f"Created {len(response.data)} post(s) for {post.date} {post.time} on {[p.value for p in platforms]}")
    return [transform_post_data(row) for row in response.data]


def _update_row(db, user_id: str, post_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
    update_data = {**update_data, "updated_at": utc_now_iso()}
    response = db.table(POSTS_TABLE).update(update_data).eq('id', post_id).eq('user_id', user_id).execute()
    if not response.data:
        raise PostNotFoundError(post_id)
    return transform_post_data(response.data[0])


def update_post(db, user_id: str, post_id: str, changes: PostUpdate) -> Dict[str, Any]:
    current = get_post(db, user_id, post_id)
    if current['status'] not in OPEN_STATUSES:
        raise InvalidPostStateError(f"A {current['status']} post cannot be edited")

    update_data = changes.dict(exclude_none=True)
    if not update_data:
        return current

    for key in ('platform', 'status'):
        if key in update_data:
            update_data[key] = update_data[key].value if hasattr(update_data[key], 'value') else update_data[key]

    return _update_row(db, user_id, post_id, update_data)


def soft_delete_post(db, user_id: str, post_id: str) -> Dict[str, Any]:
    """Move a post to the trash, remembering the status it had"""
    current = get_post(db, user_id, post_id)
    if current['status'] == PostStatus.DELETED.value:
        raise InvalidPostStateError("Post is already in the trash")

    return _update_row(db, user_id, post_id, {
        "status": PostStatus.DELETED.value,
        "previous_status": current['status'],
        "deleted_at": utc_now_iso(),
    })


def restore_post(db, user_id: str, post_id: str) -> Dict[str, Any]:
    current = get_post(db, user_id, post_id)
    if current['status'] != PostStatus.DELETED.value:
        raise InvalidPostStateError("Only posts in the trash can be restored")

    return _update_row(db, user_id, post_id, {
        "status": current.get('previous_status') or PostStatus.SCHEDULED.value,
        "previous_status": None,
        "deleted_at": None,
    })


def list_trash(db, user_id: str) -> List[Dict[str, Any]]:
    response = db.table(POSTS_TABLE).select('*').eq('user_id', user_id).eq(
        'status', PostStatus.DELETED.value
    ).order('deleted_at', desc=True).execute()
    return [transform_post_data(post) for post in response.data or []]


def delete_post_permanently(db, user_id: str, post_id: str) -> None:
    current = get_post(db, user_id, post_id)
    if current['status'] != PostStatus.DELETED.value:
        raise InvalidPostStateError("Move the post to the trash before deleting it permanently")

    db.table(POSTS_TABLE).delete().eq('id', post_id).eq('user_id', user_id).execute()
    logger.info(f"Permanently deleted post {post_id}")


def empty_trash(db, user_id: str) -> int:
    response = db.table(POSTS_TABLE).delete().eq('user_id', user_id).eq(
        'status', PostStatus.DELETED.value
    ).execute()
    deleted_count = len(response.data or [])
    logger.info(f"Emptied trash for user {user_id}: {deleted_count} post(s)")
    return deleted_count


def get_connected_platforms(db, user_id: str) -> List[str]:
    response = db.table(CONNECTIONS_TABLE).select('provider').eq('user_id', user_id).execute()
    return sorted({row['provider'] for row in response.data or []})


def post_stats(db, user_id: str, today: date) -> Dict[str, Any]:
    response = db.table(POSTS_TABLE).select('date, status').eq('user_id', user_id).execute()
    posts = response.data or []
    by_status = calendar_service.count_by_status(posts)

    return {
        "scheduled": sum(1 for p in posts if calendar_service.is_active(p)),
        "this_week": calendar_service.count_this_week(posts, today),
        "platforms": len(Platform),
        "by_status": by_status,
        "connected_platforms": get_connected_platforms(db, user_id),
    }


def _get_connection(db, user_id: str, platform: str) -> Dict[str, Any]:
    response = db.table(CONNECTIONS_TABLE).select('*').eq('user_id', user_id).eq(
        'provider', platform
    ).order('updated_at', desc=True).limit(1).execute()
    if not response.data:
        raise ConnectionNotFoundError(f"Connect a {platform} account before publishing")
    return response.data[0]


async def publish_post(
    db,
    user_id: str,
    post_id: str,
    publisher: PlatformPublisher
) -> Tuple[Dict[str, Any], PublishResult]:
    """
    Publish a post through the user's linked account for its platform

    One delegated call; the outcome is written back to the row as
    `published` or `failed`. There is no retry.
    """
    post = get_post(db, user_id, post_id)
    if post['status'] not in OPEN_STATUSES:
        raise InvalidPostStateError(f"A {post['status']} post cannot be published")

    connection = _get_connection(db, user_id, post['platform'])
    access_token = decrypt_token(connection.get('access_token'))
    if not access_token:
        raise ConnectionNotFoundError(
            f"The linked {post['platform']} account has no readable token; reconnect it"
        )

    result = await publisher.publish(
        post['platform'],
        access_token,
        connection['provider_account_id'],
        post['content'],
        post.get('media_urls', [])
    )

    if result.succeeded:
        updated = _update_row(db, user_id, post_id, {
            "status": PostStatus.PUBLISHED.value,
            "published_at": utc_now_iso(),
            "platform_post_id": result.platform_post_id,
            "error_message": None,
        })
        logger.info(f"Published post {post_id} to {post['platform']}: {result.platform_post_id}")
    else:
        updated = mark_post_failed(db, user_id, post_id, result.error_message)

    return updated, result


def mark_post_failed(db, user_id: str, post_id: str, error_message: str) -> Dict[str, Any]:
    return _update_row(db, user_id, post_id, {
        "status": PostStatus.FAILED.value,
        "error_message": error_message,
    })
