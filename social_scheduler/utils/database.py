# social_scheduler/utils/database.py
import json
import logging
from functools import lru_cache
from typing import Any, Dict

from fastapi import HTTPException, status
from supabase import Client, create_client

from social_scheduler.core.config import get_settings

logger = logging.getLogger(__name__)

POSTS_TABLE = "posts"
MEDIA_TABLE = "media_files"
CONNECTIONS_TABLE = "social_connections"
OAUTH_STATES_TABLE = "oauth_states"


@lru_cache()
def get_supabase_client(admin_access: bool = True) -> Client:
    """Create (once) the Supabase client used for table access.

    Admin access uses the service role key, which bypasses row level
    security; every query in this codebase therefore filters on user_id.
    """
    settings = get_settings()
    key = settings.SUPABASE_KEY
    if admin_access:
        if settings.SUPABASE_SERVICE_ROLE_KEY:
            key = settings.SUPABASE_SERVICE_ROLE_KEY
        else:
            logger.warning("Using ANON key instead of SERVICE ROLE key. Some operations may fail.")

    if not settings.SUPABASE_URL or not key:
        raise ValueError("Missing Supabase credentials in environment variables")

    client = create_client(settings.SUPABASE_URL, key)
    logger.info("Supabase client initialized (admin_access=%s)", admin_access)
    return client


def get_auth_client() -> Client:
    """Fresh anon client for sign up / sign in calls.

    The auth helpers store the signed-in session on the client they run on,
    so they must never touch the shared table client.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication provider not configured"
        )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


async def _admin_database():
    try:
        return get_supabase_client(admin_access=True)
    except Exception as e:
        logger.error(f"Database error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error: {str(e)}"
        )


async def _standard_database():
    try:
        return get_supabase_client(admin_access=False)
    except Exception as e:
        logger.error(f"Database error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error: {str(e)}"
        )


def get_db(admin_access: bool = True):
    """Return the FastAPI dependency for the requested access level."""
    return _admin_database if admin_access else _standard_database


# Default dependency used by routers
get_database = get_db(admin_access=True)


def safe_json_parse(value, default):
    """Safely parse JSON strings to Python objects"""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return default
    elif value is None:
        return default
    else:
        return value


def transform_post_data(post: Dict[str, Any]) -> Dict[str, Any]:
    """Transform a post row from the database to API response format"""
    return {
        **post,
        'media_urls': safe_json_parse(post.get('media_urls'), []),
        'auto_publish': bool(post.get('auto_publish', False)),
    }


def transform_media_data(media: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **media,
        'metadata': safe_json_parse(media.get('metadata'), {}),
    }
